# sitepay_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Iterable, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from sitepay_api.common.http import fail


# ---------- helpers ----------

def _wildcard_match(user_perm: str, required: str) -> bool:
    """
    Match required permission against a user's permission with simple wildcards.
    Examples:
      user_perm: 'payroll.*'            matches required: 'payroll.payslips.generate'
      user_perm: 'payroll.payslips.*'   matches required: 'payroll.payslips.pay'
      user_perm: 'payroll.salary.read'  matches only exact
    """
    if user_perm == required:
        return True
    if user_perm.endswith(".*"):
        prefix = user_perm[:-2]
        return required.startswith(prefix + ".")
    return False


def _has_any_perm(user_perms: Set[str], required_perms: Iterable[str]) -> bool:
    if not required_perms:
        return True
    if not user_perms:
        return False
    for req in required_perms:
        if any(_wildcard_match(up, req) for up in user_perms):
            return True
    return False


# ---------- decorators ----------

def requires_perms(*perm_codes: str):
    """
    Require that the current principal has ANY of the given permission codes.

    Identity, roles and permissions are issued by the auth service as JWT
    claims ('roles', 'perms'); this service only reads them.
    The 'admin' role always passes.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            if not perm_codes:
                return fn(*args, **kwargs)

            if get_jwt_identity() is None:
                return fail("Unauthorized", status=401)

            claims = get_jwt() or {}
            roles = set(claims.get("roles") or [])
            if "admin" in roles:
                return fn(*args, **kwargs)

            perms = set(claims.get("perms") or [])
            if not _has_any_perm(perms, perm_codes):
                return fail("Forbidden", status=403, code="FORBIDDEN",
                            detail={"required": list(perm_codes)})

            return fn(*args, **kwargs)
        return inner
    return outer
