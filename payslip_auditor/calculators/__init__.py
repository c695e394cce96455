from payslip_auditor.calculators.common import (
    PAY_FREQUENCIES,
    derive_weekly_earnings,
    normalize_pay_frequency,
    periods_per_year,
    round2,
    weeks_per_period,
)
from payslip_auditor.calculators.ireland import (
    IePayeBreakdown,
    IePayeInputs,
    IePrsiProfile,
    IePrsiResult,
    IeUscResult,
    calc_ie_paye,
    calc_ie_prsi,
    calc_ie_usc,
    normalize_prsi_class,
)
from payslip_auditor.calculators.uk import (
    UkNicResult,
    UkPayeResult,
    UkStudentLoanResult,
    calc_uk_nic,
    calc_uk_paye,
    calc_uk_student_loan,
    normalize_nic_category,
)

__all__ = [
    "PAY_FREQUENCIES",
    "IePayeBreakdown",
    "IePayeInputs",
    "IePrsiProfile",
    "IePrsiResult",
    "IeUscResult",
    "UkNicResult",
    "UkPayeResult",
    "UkStudentLoanResult",
    "calc_ie_paye",
    "calc_ie_prsi",
    "calc_ie_usc",
    "calc_uk_nic",
    "calc_uk_paye",
    "calc_uk_student_loan",
    "derive_weekly_earnings",
    "normalize_nic_category",
    "normalize_pay_frequency",
    "normalize_prsi_class",
    "periods_per_year",
    "round2",
    "weeks_per_period",
]
