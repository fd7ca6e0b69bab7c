"""Role based access policy.

Every protected operation is listed once in ``POLICY`` together with the
roles allowed to perform it. Endpoints declare the operation they perform
through ``require_permission`` instead of checking roles inline.
"""

from enum import Enum


class Role(str, Enum):
    """Staff roles."""

    ADMIN = "admin"
    MEDICAL_STAFF = "medical_staff"
    DOCTOR = "doctor"
    FINANCIAL_ADMIN = "financial_admin"


class Operation(str, Enum):
    """Operations guarded by the policy table."""

    CREATE_PATIENT = "create_patient"
    UPDATE_PATIENT = "update_patient"
    GET_PATIENT = "get_patient"
    LIST_PATIENTS = "list_patients"
    EXPORT_PATIENTS = "export_patients"
    DELETE_PATIENT = "delete_patient"
    SET_PAYMENT_STATUS = "set_payment_status"
    GENERATE_INVOICE = "generate_invoice"
    GENERATE_RECEIPT = "generate_receipt"
    UPLOAD_RESULT = "upload_result"
    LIST_RESULTS_FOR_PATIENT = "list_results_for_patient"
    SET_RESULT_STATUS = "set_result_status"
    ISSUE_RESULT = "issue_result"
    GET_RESULT_DOWNLOAD_LINK = "get_result_download_link"
    DELETE_RESULT = "delete_result"
    VIEW_ANALYTICS = "view_analytics"
    VIEW_STAFF_LIST = "view_staff_list"
    MANAGE_STAFF = "manage_staff"
    SUBMIT_QUERY = "submit_query"
    VIEW_OWN_QUERIES = "view_own_queries"
    MANAGE_QUERIES = "manage_queries"
    SEND_NOTIFICATION = "send_notification"
    VIEW_NOTIFICATIONS = "view_notifications"
    VIEW_EVENTS = "view_events"
    MANAGE_EVENTS = "manage_events"
    CHAT = "chat"


ALL_ROLES = frozenset(Role)
ADMIN_ONLY = frozenset({Role.ADMIN})
STAFF_AND_ADMIN = frozenset({Role.MEDICAL_STAFF, Role.ADMIN})
BILLING_ROLES = frozenset({Role.MEDICAL_STAFF, Role.ADMIN, Role.FINANCIAL_ADMIN})
CLINICAL_ROLES = frozenset({Role.ADMIN, Role.MEDICAL_STAFF, Role.DOCTOR})

POLICY: dict[Operation, frozenset[Role]] = {
    Operation.CREATE_PATIENT: STAFF_AND_ADMIN,
    Operation.UPDATE_PATIENT: STAFF_AND_ADMIN,
    Operation.GET_PATIENT: ALL_ROLES,
    Operation.LIST_PATIENTS: ALL_ROLES,
    Operation.EXPORT_PATIENTS: ALL_ROLES,
    Operation.DELETE_PATIENT: ADMIN_ONLY,
    Operation.SET_PAYMENT_STATUS: BILLING_ROLES,
    Operation.GENERATE_INVOICE: BILLING_ROLES,
    Operation.GENERATE_RECEIPT: BILLING_ROLES,
    Operation.UPLOAD_RESULT: CLINICAL_ROLES,
    Operation.LIST_RESULTS_FOR_PATIENT: ALL_ROLES,
    Operation.SET_RESULT_STATUS: ALL_ROLES,
    Operation.ISSUE_RESULT: ALL_ROLES,
    Operation.GET_RESULT_DOWNLOAD_LINK: ALL_ROLES,
    Operation.DELETE_RESULT: ADMIN_ONLY,
    Operation.VIEW_ANALYTICS: ALL_ROLES,
    Operation.VIEW_STAFF_LIST: ALL_ROLES,
    Operation.MANAGE_STAFF: ADMIN_ONLY,
    Operation.SUBMIT_QUERY: frozenset({Role.MEDICAL_STAFF}),
    Operation.VIEW_OWN_QUERIES: STAFF_AND_ADMIN,
    Operation.MANAGE_QUERIES: ADMIN_ONLY,
    Operation.SEND_NOTIFICATION: ADMIN_ONLY,
    Operation.VIEW_NOTIFICATIONS: STAFF_AND_ADMIN,
    Operation.VIEW_EVENTS: ALL_ROLES,
    Operation.MANAGE_EVENTS: CLINICAL_ROLES,
    Operation.CHAT: STAFF_AND_ADMIN,
}


def is_allowed(role: str | None, operation: Operation) -> bool:
    """
    Check whether a role may perform an operation.

    Args:
        role: Caller role as stored on the user row
        operation: Operation being attempted

    Returns:
        True if the policy table grants the role, False otherwise
    """
    try:
        caller_role = Role(role)
    except ValueError:
        return False
    return caller_role in POLICY.get(operation, frozenset())
