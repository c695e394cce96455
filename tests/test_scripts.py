import json
from unittest.mock import patch

import pytest

from scripts import validate_golden_dataset


@pytest.mark.unit
def test_validate_golden_dataset_writes_report(tmp_path, capsys):
    report_path = tmp_path / "golden.json"
    assert validate_golden_dataset.validate_golden_dataset(report_path) == []

    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["failing"] == []
    assert {case["id"] for case in report["cases"]} >= {"ie-clean", "uk-ytd-regression"}
    assert "SUCCESS" in capsys.readouterr().out


@pytest.mark.unit
def test_validate_golden_dataset_exits_on_drift(capsys):
    with patch.object(validate_golden_dataset, "check_golden_dataset", return_value=["ie-clean"]):
        with pytest.raises(SystemExit) as excinfo:
            validate_golden_dataset.validate_golden_dataset()
    assert excinfo.value.code == 1
    assert "ie-clean: FAIL" in capsys.readouterr().out
