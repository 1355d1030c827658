"""Export and import pipeline for HikmaCash financial records."""

__version__ = "0.1.0"
