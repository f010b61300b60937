"""Default capability adapters.

Concrete implementations of the malware-scan, text-extraction and
sensitive-data contracts from :mod:`docassess.core.capabilities`.
"""

from docassess.adapters.clamav_scanner import ClamAVMalwareScanner, MalwareScanError
from docassess.adapters.document_extractor import DocumentExtractor, ExtractionError
from docassess.adapters.sensitive_data import PatternSensitiveDataDetector

__all__ = [
    "ClamAVMalwareScanner",
    "DocumentExtractor",
    "ExtractionError",
    "MalwareScanError",
    "PatternSensitiveDataDetector",
]
