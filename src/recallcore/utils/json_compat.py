"""
JSON compatibility layer for RecallCore.
Auto-detects and uses `orjson` if available, falling back to the standard
Python `json` library. Dates and datetimes are written as ISO-8601 strings,
which is also the form prompts carry their review dates in.
With orjson, any ``indent`` produces two-space indentation.
"""
import json as std_json
from datetime import datetime, date

try:
    import orjson
    ORJSON_AVAILABLE = True
except ImportError:
    ORJSON_AVAILABLE = False

JSONDecodeError = std_json.JSONDecodeError


def loads(obj):
    if ORJSON_AVAILABLE:
        return orjson.loads(obj)
    if isinstance(obj, bytes):
        return std_json.loads(obj.decode('utf-8'))
    return std_json.loads(obj)


class FallbackEncoder(std_json.JSONEncoder):
    def __init__(self, **kwargs):
        self.user_default = kwargs.pop('default', None)
        super().__init__(**kwargs)

    def default(self, obj):
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)
        if self.user_default:
            return self.user_default(obj)
        return str(obj)


def _orjson_default(obj):
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


def dumps(obj, **kwargs):
    if ORJSON_AVAILABLE:
        option = orjson.OPT_NON_STR_KEYS
        # orjson only knows two-space indentation; any indent asks for it
        if kwargs.get('indent'):
            option |= orjson.OPT_INDENT_2
        default_fn = kwargs.get('default', _orjson_default)
        # orjson dumps returns bytes; for drop-in compatibility, return str.
        return orjson.dumps(obj, option=option, default=default_fn).decode('utf-8')

    kwargs['cls'] = FallbackEncoder
    return std_json.dumps(obj, **kwargs)


def dump(obj, fp, **kwargs):
    """Note: assumes fp is opened in text mode for drop-in compatibility."""
    fp.write(dumps(obj, **kwargs))


def load(fp):
    return loads(fp.read())
