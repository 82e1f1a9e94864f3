"""CSM backend services package."""

from .bos import BOSService
from .bss import BSSService
from .capmc import CAPMCService
from .cfs import CFSService
from .hsm import HSMService
from .ims import IMSService

__all__ = [
    "BOSService",
    "BSSService",
    "CAPMCService",
    "CFSService",
    "HSMService",
    "IMSService",
]
