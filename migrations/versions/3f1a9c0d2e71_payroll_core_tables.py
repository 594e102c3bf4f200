"""payroll core tables (attendance, salary structures, payslips, stat configs)

Revision ID: 3f1a9c0d2e71
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c0d2e71'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name):
    return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default='0')


def upgrade() -> None:
    # Master data is owned elsewhere; created here so the FKs resolve on a fresh DB
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=50), nullable=False, unique=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        'sites',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('company_id', 'code', name='uq_site_company_code'),
    )
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('site_id', sa.Integer(), sa.ForeignKey('sites.id', ondelete='SET NULL'), nullable=True),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('first_name', sa.String(length=80), nullable=False),
        sa.Column('last_name', sa.String(length=80), nullable=True),
        sa.Column('designation', sa.String(length=120), nullable=True),
        sa.Column('mobile', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        sa.Column('bank_name', sa.String(length=120), nullable=True),
        sa.Column('account_number', sa.String(length=34), nullable=True),
        sa.Column('ifsc_code', sa.String(length=11), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('company_id', 'code', name='uq_employee_company_code'),
    )
    op.create_index('ix_emp_company_id', 'employees', ['company_id'])
    op.create_index('ix_emp_site_id', 'employees', ['site_id'])

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('month', sa.String(length=7), nullable=False),
        sa.Column('days_present', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_days_in_month', sa.Integer(), nullable=False),
        sa.Column('remarks', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=12), nullable=False, server_default='DRAFT'),
        sa.Column('finalized_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'month', name='uq_attendance_emp_month'),
    )
    op.create_index('ix_attendance_records_employee_id', 'attendance_records', ['employee_id'])
    op.create_index('ix_attendance_month_status', 'attendance_records', ['month', 'status'])

    op.create_table(
        'salary_structures',
        sa.Column('salary_id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        _money('basic_salary'), _money('hra'), _money('incentive_allowance'),
        _money('pf_deduction'), _money('esi_deduction'), _money('professional_tax'),
        _money('mediclaim_deduction'), _money('advance_deduction'), _money('other_deductions'),
        _money('gross_salary'), _money('total_deductions'), _money('net_salary'),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='ACTIVE'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_salary_structures_employee_id', 'salary_structures', ['employee_id'])
    # at most one ACTIVE structure per employee
    op.create_index(
        'uq_salary_active_per_employee', 'salary_structures', ['employee_id'], unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
        sqlite_where=sa.text("status = 'ACTIVE'"),
    )

    op.create_table(
        'payslips',
        sa.Column('payslip_id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('salary_id', sa.Integer(), sa.ForeignKey('salary_structures.salary_id', ondelete='SET NULL'), nullable=True),
        sa.Column('month', sa.String(length=7), nullable=False),
        sa.Column('days_present', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_days_in_month', sa.Integer(), nullable=False),
        sa.Column('total_working_days', sa.Integer(), nullable=False),
        sa.Column('days_absent', sa.Integer(), nullable=False, server_default='0'),
        _money('basic_salary'), _money('hra'), _money('incentive_allowance'),
        _money('overtime_amount'), _money('gross_salary'),
        _money('pf_deduction'), _money('esi_deduction'), _money('professional_tax'),
        _money('advance_deduction'), _money('welfare_deduction'), _money('health_insurance'),
        _money('other_deductions'), _money('total_deductions'), _money('net_salary'),
        sa.Column('payment_status', sa.String(length=10), nullable=False, server_default='PENDING'),
        sa.Column('payment_date', sa.DateTime(), nullable=True),
        sa.Column('payment_method', sa.String(length=30), nullable=True),
        sa.Column('payment_reference', sa.String(length=80), nullable=True),
        sa.Column('remarks', sa.String(length=255), nullable=True),
        sa.Column('calc_meta', sa.JSON(), nullable=True),
        sa.Column('generated_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'month', name='uq_payslip_emp_month'),
    )
    op.create_index('ix_payslips_employee_id', 'payslips', ['employee_id'])
    op.create_index('ix_payslip_month', 'payslips', ['month'])

    op.create_table(
        'stat_configs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('type', sa.String(length=8), nullable=False),
        sa.Column('key', sa.String(length=80), nullable=False),
        sa.Column('value_json', sa.JSON(), nullable=False),
        sa.Column('scope_company_id', sa.Integer(), nullable=True),
        sa.Column('scope_state', sa.String(length=10), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('effective_to', sa.Date(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_statcfg_resolve', 'stat_configs',
                    ['type', 'scope_state', 'scope_company_id', 'effective_from', 'effective_to', 'priority'])


def downgrade() -> None:
    op.drop_index('ix_statcfg_resolve', table_name='stat_configs')
    op.drop_table('stat_configs')
    op.drop_index('ix_payslip_month', table_name='payslips')
    op.drop_index('ix_payslips_employee_id', table_name='payslips')
    op.drop_table('payslips')
    op.drop_index('uq_salary_active_per_employee', table_name='salary_structures')
    op.drop_index('ix_salary_structures_employee_id', table_name='salary_structures')
    op.drop_table('salary_structures')
    op.drop_index('ix_attendance_month_status', table_name='attendance_records')
    op.drop_index('ix_attendance_records_employee_id', table_name='attendance_records')
    op.drop_table('attendance_records')
    op.drop_index('ix_emp_site_id', table_name='employees')
    op.drop_index('ix_emp_company_id', table_name='employees')
    op.drop_table('employees')
    op.drop_table('sites')
    op.drop_table('companies')
