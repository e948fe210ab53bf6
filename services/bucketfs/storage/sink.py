"""Write sink that hands its accumulated bytes to a commit callback on close."""

from __future__ import annotations

import io
from collections.abc import Callable


class CommitSink(io.BytesIO):
    def __init__(self, commit: Callable[[bytes], None]) -> None:
        super().__init__()
        self._commit = commit

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._commit(self.getvalue())
        finally:
            super().close()
