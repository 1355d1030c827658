# hikma_export/artifacts.py
from hikma_export.codecs import get_codec


def resolve_enterprise_name(request_name, setting):
    """Prefer the name sent with the request, then the stored setting."""
    name = (request_name or "").strip()
    if name:
        return name
    if setting is not None and (setting.name or "").strip():
        return setting.name.strip()
    return None


def build_artifact(format, transactions, categories, enterprise_name, export_date, config=None):
    """Encode a snapshot with the codec registered for ``format``.

    Raises InvalidFormat before any encoding happens when no codec matches.
    """
    codec = get_codec(format, config)
    return codec.encode(list(transactions), list(categories), enterprise_name, export_date)
