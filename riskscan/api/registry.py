"""Runtime objects shared with the API, populated at startup."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from riskscan.bootstrap import ScannerContainer
    from riskscan.security.scanner import SecurityScanner


class ScannerRegistry:
    container: ScannerContainer | None = None
    started_at: float = time.monotonic()

    @property
    def scanner(self) -> SecurityScanner | None:
        return self.container.scanner if self.container else None


registry = ScannerRegistry()
