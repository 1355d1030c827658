# hikma_export/codecs/__init__.py
from importlib import import_module

from hikma_export.errors import InvalidFormat

DEFAULT_CODECS = {
    "json": "hikma_export.codecs.json_codec.JSONCodec",
    "excel": "hikma_export.codecs.excel_codec.ExcelCodec",
}


def get_codec(name, config=None):
    config = config or {}
    codecs = config.get("codecs") or DEFAULT_CODECS
    if not isinstance(name, str) or name not in codecs:
        raise InvalidFormat(f"Unsupported export format: {name!r}")
    module_name, cls_name = codecs[name].rsplit(".", 1)
    mod = import_module(module_name)
    return getattr(mod, cls_name)(config)
