"""
CSM Node Tools - boot image, desired configuration and power orchestration
for HPE Cray System Management nodes.
"""

__version__ = "0.1.0"
__description__ = "Node update and reboot orchestration for CSM clusters"

from .client import CSMClient
from .models import CSMConfig

__all__ = ["CSMClient", "CSMConfig"]
