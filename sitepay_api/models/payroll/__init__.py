# sitepay_api/models/payroll/__init__.py
# Import order matters: structures first, payslips reference them.
from .salary_structure import SalaryStructure
from .payslip import Payslip
from .stat_config import StatConfig

__all__ = ["SalaryStructure", "Payslip", "StatConfig"]
