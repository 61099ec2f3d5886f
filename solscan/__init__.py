"""solscan - Describe .NET solutions for XAML design-time hosts."""

from solscan.config import Manifest, ScanConfig
from solscan.pipeline import run_pipeline

__version__ = "0.1.0"
__all__ = ["Manifest", "ScanConfig", "run_pipeline"]
