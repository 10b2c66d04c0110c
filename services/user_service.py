"""
User operations. Users live in the identity provider; this module only
reshapes its records and writes back through it.
"""

from datetime import datetime, timezone

from flask import current_app

from services import ErrorKind, ServiceResult
from services.identity_provider import IdentityProviderError, UserNotFoundError


ADMIN_ROLE = "admin"
USER_ROLE = "user"

# public metadata keys only admin flows may write
RESERVED_METADATA_KEYS = ("role", "isFounder", "promotedAt", "promotedBy")


def _provider():
    return current_app.identity_provider


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


# =================================
#         Helper Functions
# =================================


def is_admin_record(record):
    return (record.get("public_metadata") or {}).get("role") == ADMIN_ROLE


def _primary_email(record):
    emails = record.get("email_addresses") or []
    return emails[0] if emails else {}


def format_user(record):
    email = _primary_email(record)
    first_name = record.get("first_name") or ""
    last_name = record.get("last_name") or ""
    return {
        "id": record.get("id"),
        "email": email.get("email_address"),
        "firstName": record.get("first_name"),
        "lastName": record.get("last_name"),
        "fullName": f"{first_name} {last_name}".strip(),
        "imageUrl": record.get("image_url"),
        "createdAt": record.get("created_at"),
        "lastSignInAt": record.get("last_sign_in_at"),
        "emailVerified": (email.get("verification") or {}).get("status")
        == "verified",
        "isAdmin": is_admin_record(record),
        "banned": bool(record.get("banned")),
    }


def format_profile(record):
    profile = format_user(record)
    profile.update(
        {
            "phoneNumbers": [
                {
                    "number": phone.get("phone_number"),
                    "verified": (phone.get("verification") or {}).get("status")
                    == "verified",
                }
                for phone in record.get("phone_numbers") or []
            ],
            "externalAccounts": [
                {
                    "provider": account.get("provider"),
                    "emailAddress": account.get("email_address"),
                }
                for account in record.get("external_accounts") or []
            ],
            "publicMetadata": record.get("public_metadata") or {},
            "privateMetadata": record.get("private_metadata") or {},
        }
    )
    return profile


def _fail_from(exc, action):
    if isinstance(exc, UserNotFoundError):
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "User not found")
    current_app.logger.error("Identity provider error while %s: %s", action, exc)
    return ServiceResult.fail(ErrorKind.UNAVAILABLE, f"Failed to {action}")


# =================================
#          Self-service
# =================================


def get_user_by_id(user_id):
    try:
        record = _provider().get_user(user_id)
    except IdentityProviderError as e:
        return _fail_from(e, "fetch user information")
    return ServiceResult.ok(format_user(record))


def get_user_profile(user_id):
    try:
        record = _provider().get_user(user_id)
    except IdentityProviderError as e:
        return _fail_from(e, "fetch user profile")
    return ServiceResult.ok(format_profile(record))


def update_user_metadata(user_id, public_metadata=None, private_metadata=None):
    if not public_metadata and not private_metadata:
        return ServiceResult.fail(
            ErrorKind.VALIDATION,
            "At least one of publicMetadata or privateMetadata is required",
        )
    for name, value in (
        ("publicMetadata", public_metadata),
        ("privateMetadata", private_metadata),
    ):
        if value is not None and not isinstance(value, dict):
            return ServiceResult.fail(
                ErrorKind.VALIDATION, f"{name} must be an object"
            )

    if public_metadata:
        public_metadata = {
            key: value
            for key, value in public_metadata.items()
            if key not in RESERVED_METADATA_KEYS
        }
        if not public_metadata and not private_metadata:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "publicMetadata only contained keys that cannot be changed",
            )

    try:
        record = _provider().update_user_metadata(
            user_id,
            public_metadata=public_metadata or None,
            private_metadata=private_metadata or None,
        )
    except IdentityProviderError as e:
        return _fail_from(e, "update user metadata")

    return ServiceResult.ok(
        {
            "id": record.get("id"),
            "publicMetadata": record.get("public_metadata") or {},
            "privateMetadata": record.get("private_metadata") or {},
        }
    )


# =================================
#        User Administration
# =================================


def get_users(limit=10, offset=0, email_address=None):
    try:
        records = _provider().list_users(
            limit=limit, offset=offset, email_address=email_address
        )
        total = _provider().count_users(email_address=email_address)
    except IdentityProviderError as e:
        return _fail_from(e, "fetch users")

    return ServiceResult.ok(
        {"users": [format_user(record) for record in records], "totalCount": total}
    )


def ban_user(user_id, banned=True):
    try:
        record = _provider().set_banned(user_id, banned)
    except IdentityProviderError as e:
        return _fail_from(e, "update user ban status")

    current_app.logger.warning(
        "User %s %s", user_id, "banned" if banned else "unbanned"
    )
    return ServiceResult.ok({"id": record.get("id"), "banned": bool(record.get("banned"))})


def delete_user(user_id):
    try:
        _provider().delete_user(user_id)
    except IdentityProviderError as e:
        return _fail_from(e, "delete user")

    current_app.logger.warning("User %s deleted", user_id)
    return ServiceResult.ok(message="User deleted successfully")


def set_user_admin_status(user_id, is_admin=True, promoted_by=None):
    metadata = {"role": ADMIN_ROLE if is_admin else USER_ROLE}
    if is_admin:
        metadata["promotedAt"] = _now_iso()
        if promoted_by:
            metadata["promotedBy"] = promoted_by

    try:
        record = _provider().update_user_metadata(user_id, public_metadata=metadata)
    except IdentityProviderError as e:
        return _fail_from(e, "update admin status")

    current_app.logger.warning(
        "User %s role set to %s", user_id, metadata["role"]
    )
    return ServiceResult.ok(
        {
            "id": record.get("id"),
            "isAdmin": is_admin_record(record),
            "role": (record.get("public_metadata") or {}).get("role"),
        }
    )


def find_user_by_email(email):
    try:
        records = _provider().list_users(limit=1, email_address=email)
    except IdentityProviderError as e:
        return _fail_from(e, "look up user")

    if not records:
        return ServiceResult.fail(
            ErrorKind.NOT_FOUND, f"User not found with email: {email}"
        )
    return ServiceResult.ok(records[0])


def list_admins(limit=500):
    try:
        records = _provider().list_users(limit=limit)
    except IdentityProviderError as e:
        return _fail_from(e, "list admins")

    admins = []
    for record in records:
        if not is_admin_record(record):
            continue
        admin = format_user(record)
        metadata = record.get("public_metadata") or {}
        admin["promotedAt"] = metadata.get("promotedAt")
        admin["isFounder"] = bool(metadata.get("isFounder"))
        admins.append(admin)

    return ServiceResult.ok({"totalAdmins": len(admins), "admins": admins})


def initialize_super_admin(email):
    """
    Promotes the configured founder account to admin. Safe to call on every
    start-up: an account that is already admin is left untouched.
    """
    if not email:
        current_app.logger.info("No SUPER_ADMIN_EMAIL configured")
        return ServiceResult.ok(message="No super admin configured")

    lookup = find_user_by_email(email)
    if not lookup.success:
        current_app.logger.warning("Super admin lookup failed: %s", lookup.error)
        return lookup

    record = lookup.data
    if is_admin_record(record):
        current_app.logger.info("User %s is already an admin", email)
        return ServiceResult.ok(format_user(record), message="Already an admin")

    try:
        record = _provider().update_user_metadata(
            record["id"],
            public_metadata={
                "role": ADMIN_ROLE,
                "isFounder": True,
                "promotedAt": _now_iso(),
            },
        )
    except IdentityProviderError as e:
        return _fail_from(e, "promote super admin")

    current_app.logger.info("Promoted %s (%s) to admin", email, record.get("id"))
    return ServiceResult.ok(format_user(record), message="Promoted to admin")
