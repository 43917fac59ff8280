def get_current_tenant(user):
    """
    Return the Tenant owned by this user, or None.

    Tenant provisioning and membership live outside the bookkeeping core;
    the oldest owned tenant wins when a user owns several.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return None
    from .models import Tenant  # local import to avoid app-loading cycles

    return Tenant.objects.filter(owner_user=user).order_by("id").first()
