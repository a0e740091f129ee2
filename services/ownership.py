from models import db
from services.errors import ForbiddenError, NotFoundError


def get_owned(model, owner_id, obj_id, label):
    """Load a row by id; NotFound when absent, Forbidden when another user owns it."""
    obj = db.session.get(model, obj_id) if obj_id is not None else None
    if obj is None:
        raise NotFoundError(f"{label} not found")
    if obj.user_id != owner_id:
        raise ForbiddenError(f"Not authorized to access this {label.lower()}")
    return obj
