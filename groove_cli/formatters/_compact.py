"""Tab-delimited line encoding for scripting (awk/cut)."""

from groove_cli.formatters._table import _sanitize_str

DELIMITER = "\t"
MISSING = "-"


def _person(value):
    if isinstance(value, dict):
        return value.get("email") or value.get("name") or value.get("id")
    return value


def compact_field(value):
    """Encode one field so it can never break the line/field structure."""
    if value is None or value == "":
        return MISSING
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        names = [compact_field(v.get("name") if isinstance(v, dict) else v) for v in value]
        return ",".join(names) if names else MISSING
    if isinstance(value, dict):
        value = _person(value)
        if value is None:
            return MISSING
    text = _sanitize_str(str(value))
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.replace("\n", "\\n").replace("\t", " ")


def compact_line(*fields):
    return DELIMITER.join(compact_field(f) for f in fields)


def compact_extras(obj, known):
    """Values of the keys of *obj* outside *known*, in sorted key order."""
    return [obj[key] for key in sorted(obj, key=str) if key not in known]
