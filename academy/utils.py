from flask import current_app
from flask_login import current_user

from .errors import Forbidden


def profile_store():
    return current_app.extensions["academy"]["profiles"]


def lab_registry():
    return current_app.extensions["academy"]["labs"]


def admin_required():
    if not (current_user.is_authenticated and current_user.is_admin):
        raise Forbidden("Admin only.")


def page_args(request, default_limit=20, max_limit=100):
    page = max(1, request.args.get("page", 1, type=int) or 1)
    limit = request.args.get("limit", default_limit, type=int) or default_limit
    return page, min(max(1, limit), max_limit)
