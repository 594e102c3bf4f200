# sitepay_api/common/tenant.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import request
from flask_jwt_extended import get_jwt

from sitepay_api.common.errors import InvalidInputError


@dataclass(frozen=True)
class Tenant:
    """Request-scoped company selection, passed explicitly into the services."""
    company_id: Optional[int] = None


def current_tenant() -> Tenant:
    """
    Resolve the tenant for this request.
    Priority: JWT 'company_id' claim, then ?company_id= / JSON body company_id.
    No company => Tenant(None), i.e. not restricted to a company.
    """
    raw = None
    try:
        raw = (get_jwt() or {}).get("company_id")
    except RuntimeError:
        raw = None
    if raw in (None, ""):
        raw = request.args.get("company_id")
    if raw in (None, ""):
        body = request.get_json(silent=True) or {}
        if isinstance(body, dict):
            raw = body.get("company_id")
    if raw in (None, ""):
        return Tenant()
    try:
        return Tenant(company_id=int(raw))
    except (TypeError, ValueError):
        raise InvalidInputError("company_id must be integer")
