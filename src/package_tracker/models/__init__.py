from .env_cfg import EnvCfg
from .mail import MailMessage
from .package import Carrier, Package, PackageStatus, ParseResult

__all__ = [
    "Carrier",
    "EnvCfg",
    "MailMessage",
    "Package",
    "PackageStatus",
    "ParseResult",
]
