from datetime import date, datetime

from services.errors import ValidationError


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ["1", "true", "yes", "on"]


def normalize_tags(raw):
    """Accept a comma-separated string or a list; return trimmed, non-empty, de-duplicated tags."""
    if not raw:
        return []
    if isinstance(raw, (list, tuple)):
        values = raw
    else:
        values = str(raw).split(",")
    tags = []
    seen = set()
    for value in values:
        # Commas are the storage separator, so a list entry may hold several tags
        for tag in str(value).split(","):
            tag = tag.strip()
            if tag and tag not in seen:
                seen.add(tag)
                tags.append(tag)
    return tags


def tags_to_string(tags):
    return ",".join(normalize_tags(tags))


def parse_required_text(value, field):
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def parse_optional_text(value):
    if value is None:
        return None
    return str(value).strip() or None


LIKE_ESCAPE = "\\"


def contains_pattern(text):
    """ILIKE pattern matching `text` literally anywhere; use with escape=LIKE_ESCAPE."""
    for char in (LIKE_ESCAPE, "%", "_"):
        text = text.replace(char, LIKE_ESCAPE + char)
    return f"%{text}%"


def parse_choice(value, allowed, field):
    choice = str(value or "").strip().lower()
    if choice not in allowed:
        raise ValidationError(f"Invalid {field}: must be one of {', '.join(allowed)}")
    return choice


def parse_int(value, field, minimum=None):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return number


def parse_id_list(raw, field):
    if not isinstance(raw, list) or not raw:
        raise ValidationError(f"{field} array is required")
    ids = []
    for raw_id in raw:
        try:
            ids.append(int(raw_id))
        except (ValueError, TypeError):
            continue
    return ids


def parse_day_value(raw):
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return datetime.strptime(str(raw), "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None


def parse_iso_datetime(raw):
    """Parse an ISO-8601 string (a trailing Z is accepted); return None on failure."""
    if isinstance(raw, datetime):
        return raw
    if not raw:
        return None
    text = str(raw).strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def json_object(data):
    """Request bodies must be JSON objects; a missing body counts as empty."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
