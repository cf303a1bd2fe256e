"""
Multi-tenancy package.

This package provides tenant isolation primitives.

Modules:
    context: CompanyContext resolution and the FastAPI dependency
    queries: Tenant-scoped query helpers
"""

from .context import (
    COMPANY_HEADER,
    CompanyContext,
    get_company_context,
    resolve_company_context,
    resolve_timezone_name,
)

from .queries import (
    # Composable helpers
    scoped_select,
    tenant_filter,
    require_owned,
    # Reference lookups
    get_employee_by_id,
    get_service_by_id,
    get_client_by_id,
    get_client_by_code,
    # Appointment queries
    get_appointment_by_id,
    list_company_ids_with_active_appointments,
)

__all__ = [
    # Context
    "COMPANY_HEADER",
    "CompanyContext",
    "get_company_context",
    "resolve_company_context",
    "resolve_timezone_name",
    # Query helpers
    "scoped_select",
    "tenant_filter",
    "require_owned",
    "get_employee_by_id",
    "get_service_by_id",
    "get_client_by_id",
    "get_client_by_code",
    "get_appointment_by_id",
    "list_company_ids_with_active_appointments",
]
