"""Audit event type constants.

Centralizing event types as constants prevents typos and makes it easy
to discover every kind of change the platform records.
"""

# ─── Weddings ────────────────────────────────────────────

WEDDING_CREATED = "wedding.created"
WEDDING_UPDATED = "wedding.updated"
WEDDING_ARCHIVED = "wedding.archived"

# ─── Ownership ───────────────────────────────────────────

OWNER_LINKED = "wedding.owner_linked"
OWNER_UNLINKED = "wedding.owner_unlinked"

# ─── Accounts ────────────────────────────────────────────

SUPER_ADMIN_CREATED = "admin.super_admin_created"
STAFF_CREATED = "admin.staff_created"
CLIENT_CREATED = "admin.client_created"
PASSWORD_CHANGED = "admin.password_changed"
MEMBERSHIPS_RECONCILED = "admin.memberships_reconciled"
PASSWORD_RESET = "admin.password_reset"
STAFF_UPDATED = "admin.staff_updated"
STAFF_DELETED = "admin.staff_deleted"
EMAIL_UPDATED = "admin.email_updated"
