# hikma_export/codecs/json_codec.py
import simplejson

from hikma_export.codecs.base import BaseCodec
from hikma_export.core.models import ExportArtifact
from hikma_export.core.payload import dump_records, parse_payload


class JSONCodec(BaseCodec):
    """Pretty-printed UTF-8 JSON document, re-importable through ``decode``.

    Amounts are written as exact JSON numbers straight from their Decimal value.
    """

    content_type = "application/json"

    def encode(self, transactions, categories, enterprise_name, export_date):
        document = dump_records(transactions, categories, enterprise_name)
        text = simplejson.dumps(document, indent=2, ensure_ascii=False, use_decimal=True)
        file_name = f"{self.file_stem(enterprise_name)}_export_{export_date.isoformat()}.json"
        return ExportArtifact(
            file_name=file_name,
            content_type=self.content_type,
            data=text.encode("utf-8"),
        )

    def decode(self, data):
        return parse_payload(data)
