# hikma_export/codecs/base.py
from abc import ABC, abstractmethod


class BaseCodec(ABC):
    content_type = "application/octet-stream"

    def __init__(self, config=None):
        self.config = config or {}
        self.default_name = self.config.get("default_enterprise_name", "HikmaCash")

    @abstractmethod
    def encode(self, transactions, categories, enterprise_name, export_date):
        """Serialize a record snapshot and return an ExportArtifact."""
        pass

    def file_stem(self, enterprise_name):
        name = (enterprise_name or "").strip() or self.default_name
        return name.replace("/", "_").replace("\\", "_")
