from veinslog.parsers.base import BaseParser
from veinslog.parsers.certificate import CertificateParser
from veinslog.parsers.config_store import ConfigStoreParser
from veinslog.parsers.generic import GenericParser
from veinslog.parsers.qca import QcaParser
from veinslog.parsers.veins import VeinsParser

__all__ = [
    "BaseParser",
    "CertificateParser",
    "ConfigStoreParser",
    "GenericParser",
    "QcaParser",
    "VeinsParser",
]
