"""payslip earned components (prorated basic/hra/incentive)

Revision ID: 8c42d7e5b190
Revises: 3f1a9c0d2e71
Create Date: 2026-10-17 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c42d7e5b190'
down_revision: Union[str, Sequence[str], None] = '3f1a9c0d2e71'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table('payslips') as batch:
        batch.add_column(sa.Column('earned_basic', sa.Numeric(12, 2), nullable=False, server_default='0'))
        batch.add_column(sa.Column('earned_hra', sa.Numeric(12, 2), nullable=False, server_default='0'))
        batch.add_column(sa.Column('earned_incentive', sa.Numeric(12, 2), nullable=False, server_default='0'))

    # existing rows: same running-total split the generator uses
    op.execute("""
        UPDATE payslips SET
            earned_basic = ROUND(basic_salary * 1.0 * days_present / total_days_in_month),
            earned_hra = ROUND((basic_salary + hra) * 1.0 * days_present / total_days_in_month)
                         - ROUND(basic_salary * 1.0 * days_present / total_days_in_month),
            earned_incentive = gross_salary
                         - ROUND((basic_salary + hra) * 1.0 * days_present / total_days_in_month)
        WHERE total_days_in_month > 0
    """)


def downgrade() -> None:
    with op.batch_alter_table('payslips') as batch:
        batch.drop_column('earned_incentive')
        batch.drop_column('earned_hra')
        batch.drop_column('earned_basic')
