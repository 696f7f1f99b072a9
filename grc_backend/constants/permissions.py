"""
Permission catalog.

Codes are ``<module>.<action>``. Only the code takes part in authorization;
module and description are shown in role editors.
"""

from typing import NamedTuple, Tuple


class PermissionDefinition(NamedTuple):
    code: str
    module: str
    description: str


# Assets

ASSET_VIEW = "asset.view"
ASSET_CREATE = "asset.create"
ASSET_EDIT = "asset.edit"
ASSET_DELETE = "asset.delete"
ASSET_ASSIGN = "asset.assign"

# Documents

DOCUMENT_READ = "document.read"
DOCUMENT_UPLOAD = "document.upload"
DOCUMENT_EDIT = "document.edit"
DOCUMENT_DELETE = "document.delete"
DOCUMENT_APPROVE = "document.approve"
DOCUMENT_PUBLISH = "document.publish"

# Risks

RISK_VIEW = "risk.view"
RISK_CREATE = "risk.create"
RISK_EDIT = "risk.edit"
RISK_DELETE = "risk.delete"
RISK_ASSESS = "risk.assess"
RISK_MITIGATE = "risk.mitigate"

# Incidents

INCIDENT_VIEW = "incident.view"
INCIDENT_CREATE = "incident.create"
INCIDENT_EDIT = "incident.edit"
INCIDENT_CLOSE = "incident.close"
INCIDENT_ASSIGN = "incident.assign"

# Training

TRAINING_VIEW = "training.view"
TRAINING_ASSIGN = "training.assign"
TRAINING_CREATE = "training.create"
TRAINING_EDIT = "training.edit"
TRAINING_VIEW_PROGRESS = "training.view_progress"

# Compliance

COMPLIANCE_VIEW = "compliance.view"
COMPLIANCE_MANAGE = "compliance.manage"
COMPLIANCE_AUDIT = "compliance.audit"

# Users

USERS_VIEW = "users.view"
USERS_CREATE = "users.create"
USERS_EDIT = "users.edit"
USERS_DELETE = "users.delete"
USERS_MANAGE = "users.manage"

# Roles

ROLES_VIEW = "roles.view"
ROLES_MANAGE = "roles.manage"

# Tenants

TENANTS_VIEW = "tenants.view"
TENANTS_MANAGE = "tenants.manage"

# Audit

AUDIT_VIEW = "audit.view"
AUDIT_EXPORT = "audit.export"

# Dashboard

DASHBOARD_VIEW = "dashboard.view"
DASHBOARD_ANALYTICS = "dashboard.analytics"


PERMISSION_CATALOG: Tuple[PermissionDefinition, ...] = (
    PermissionDefinition(ASSET_VIEW, "assets", "View assets"),
    PermissionDefinition(ASSET_CREATE, "assets", "Create assets"),
    PermissionDefinition(ASSET_EDIT, "assets", "Edit assets"),
    PermissionDefinition(ASSET_DELETE, "assets", "Delete assets"),
    PermissionDefinition(ASSET_ASSIGN, "assets", "Assign asset owners"),
    PermissionDefinition(DOCUMENT_READ, "documents", "Read documents"),
    PermissionDefinition(DOCUMENT_UPLOAD, "documents", "Upload documents"),
    PermissionDefinition(DOCUMENT_EDIT, "documents", "Edit documents"),
    PermissionDefinition(DOCUMENT_DELETE, "documents", "Delete documents"),
    PermissionDefinition(DOCUMENT_APPROVE, "documents", "Approve documents"),
    PermissionDefinition(DOCUMENT_PUBLISH, "documents", "Publish documents"),
    PermissionDefinition(RISK_VIEW, "risks", "View risks"),
    PermissionDefinition(RISK_CREATE, "risks", "Create risks"),
    PermissionDefinition(RISK_EDIT, "risks", "Edit risks"),
    PermissionDefinition(RISK_DELETE, "risks", "Delete risks"),
    PermissionDefinition(RISK_ASSESS, "risks", "Assess risks"),
    PermissionDefinition(RISK_MITIGATE, "risks", "Manage risk mitigation"),
    PermissionDefinition(INCIDENT_VIEW, "incidents", "View incidents"),
    PermissionDefinition(INCIDENT_CREATE, "incidents", "Report incidents"),
    PermissionDefinition(INCIDENT_EDIT, "incidents", "Edit incidents"),
    PermissionDefinition(INCIDENT_CLOSE, "incidents", "Close incidents"),
    PermissionDefinition(INCIDENT_ASSIGN, "incidents", "Assign incidents"),
    PermissionDefinition(TRAINING_VIEW, "training", "View training"),
    PermissionDefinition(TRAINING_ASSIGN, "training", "Assign training"),
    PermissionDefinition(TRAINING_CREATE, "training", "Create courses"),
    PermissionDefinition(TRAINING_EDIT, "training", "Edit courses"),
    PermissionDefinition(TRAINING_VIEW_PROGRESS, "training", "View training progress"),
    PermissionDefinition(COMPLIANCE_VIEW, "compliance", "View compliance status"),
    PermissionDefinition(COMPLIANCE_MANAGE, "compliance", "Manage compliance"),
    PermissionDefinition(COMPLIANCE_AUDIT, "compliance", "Conduct compliance audits"),
    PermissionDefinition(USERS_VIEW, "users", "View users"),
    PermissionDefinition(USERS_CREATE, "users", "Create users"),
    PermissionDefinition(USERS_EDIT, "users", "Edit users"),
    PermissionDefinition(USERS_DELETE, "users", "Delete users"),
    PermissionDefinition(USERS_MANAGE, "users", "Manage user role assignments"),
    PermissionDefinition(ROLES_VIEW, "roles", "View roles and the permission catalog"),
    PermissionDefinition(ROLES_MANAGE, "roles", "Create, edit and delete roles"),
    PermissionDefinition(TENANTS_VIEW, "tenants", "View tenant details"),
    PermissionDefinition(TENANTS_MANAGE, "tenants", "Manage tenant settings"),
    PermissionDefinition(AUDIT_VIEW, "audit", "View the audit log"),
    PermissionDefinition(AUDIT_EXPORT, "audit", "Export the audit log"),
    PermissionDefinition(DASHBOARD_VIEW, "dashboard", "View dashboard"),
    PermissionDefinition(DASHBOARD_ANALYTICS, "dashboard", "View analytics"),
)

ALL_PERMISSION_CODES = frozenset(p.code for p in PERMISSION_CATALOG)
