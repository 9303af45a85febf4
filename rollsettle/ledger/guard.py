"""
Execution lock for engines that hand control to untrusted code.
"""

from contextlib import contextmanager

from rollsettle.core.exceptions import ReentrantCall


class NonReentrant:
    """
    Call-scoped mutual exclusion flag.

    Set before the first external transfer, cleared only after every
    effect of the call is done. A nested entry raises ReentrantCall.
    """

    def __init__(self, name: str):
        self.name     = name
        self._entered = False

    @property
    def entered(self) -> bool:
        return self._entered

    @contextmanager
    def hold(self):
        if self._entered:
            raise ReentrantCall(f"{self.name} re-entered during an active call")
        self._entered = True
        try:
            yield
        finally:
            self._entered = False
