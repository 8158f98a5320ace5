from functools import wraps

from .models import User
from .policy import enforce


def role_required(role: str | None = None):
    """Ensure the request carries an authenticated principal with the given role.

    ``role=None`` only requires authentication.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            enforce(request.user, role=role)
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator


def owner_or_admin(owner_kwarg: str = "user_id"):
    """Restrict a view to the principal named by ``owner_kwarg`` or any admin.

    Runs before the view looks anything up, so a student gets the same 403
    whether or not the other id exists.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            enforce(request.user, owner_id=int(kwargs[owner_kwarg]))
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator


login_required_json = role_required(None)
student_required = role_required(User.Role.STUDENT)
admin_required = role_required(User.Role.ADMIN)
