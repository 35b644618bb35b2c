"""Authentication session - profile, lock state and unlock observers.

One ``AuthSession`` holds everything the voice lock needs for a single
user: the enrolled profile, whether the lock is open, the read/write lock
guarding both, and the callbacks to run when it opens. The process keeps
one default session (see ``api.dependencies``); tests create their own.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np

from core.rw_lock import ReadWriteLock
from repositories.interfaces.voice_repository import IVoiceProfileRepository
from repositories.voice.memory_repository import InMemoryVoiceProfileRepository

logger = logging.getLogger(__name__)

UnlockCallback = Callable[["AuthSession"], None]


class AuthState(str, Enum):
    LOCKED = "locked"
    ENROLLING = "enrolling"
    READY = "ready"
    UNLOCKED = "unlocked"


@dataclass(frozen=True)
class ProfileSnapshot:
    embeddings: Tuple[np.ndarray, ...]
    count: int
    unlocked: bool
    generation: int


def derive_state(count: int, target: int, unlocked: bool) -> AuthState:
    if unlocked:
        return AuthState.UNLOCKED
    if count <= 0:
        return AuthState.LOCKED
    if count < target:
        return AuthState.ENROLLING
    return AuthState.READY


class AuthSession:
    """Voice lock context for one enrolled user."""

    def __init__(
        self,
        session_id: str = "default",
        target_count: int = 3,
        profile: Optional[IVoiceProfileRepository] = None,
    ) -> None:
        if target_count <= 0:
            raise ValueError(f"target_count must be positive, got {target_count}")
        self.session_id = session_id
        self.target_count = target_count
        self.profile = profile or InMemoryVoiceProfileRepository()
        self.lock = ReadWriteLock()

        self._unlocked = False
        # Bumped on every reset so a verification that straddles a reset
        # cannot unlock the fresh profile
        self._generation = 0
        self._observers: List[UnlockCallback] = []
        self._observers_lock = threading.Lock()

    @property
    def is_locked(self) -> bool:
        return not self._unlocked

    @property
    def state(self) -> AuthState:
        with self.lock.read_locked():
            return derive_state(self.profile.count(), self.target_count, self._unlocked)

    @property
    def enrollment_count(self) -> int:
        with self.lock.read_locked():
            return self.profile.count()

    def subscribe(self, callback: UnlockCallback) -> Callable[[], None]:
        """Register ``callback`` for READY -> UNLOCKED transitions.

        Returns:
            A function that removes the subscription
        """
        with self._observers_lock:
            self._observers.append(callback)

        def unsubscribe() -> None:
            with self._observers_lock:
                if callback in self._observers:
                    self._observers.remove(callback)

        return unsubscribe

    def snapshot(self) -> ProfileSnapshot:
        with self.lock.read_locked():
            return ProfileSnapshot(
                embeddings=tuple(self.profile.get_embeddings()),
                count=self.profile.count(),
                unlocked=self._unlocked,
                generation=self._generation,
            )

    def try_enroll(self, embedding: np.ndarray, generation: int) -> Tuple[bool, int, AuthState]:
        """Append ``embedding`` to the profile observed at ``generation``.

        Refused when enrollment is already complete or the session was reset
        after that generation was read.

        Returns:
            (accepted, count, state) as observed under the write lock
        """
        with self.lock.write_locked():
            count = self.profile.count()
            state = derive_state(count, self.target_count, self._unlocked)
            if generation != self._generation:
                logger.info(
                    f"Dropped enrollment sample from before reset | session={self.session_id} "
                    f"| generation={generation} current={self._generation}"
                )
                return False, count, state
            if self._unlocked or count >= self.target_count:
                return False, count, state
            count = self.profile.add_embedding(embedding)
            return True, count, derive_state(count, self.target_count, self._unlocked)

    def try_unlock(self, generation: int) -> bool:
        """Open the lock if the profile is still the one that was matched.

        Observers run after the write lock is released, only when this call
        performed the transition.
        """
        with self.lock.write_locked():
            transitioned = (
                not self._unlocked
                and generation == self._generation
                and self.profile.count() >= self.target_count
            )
            if transitioned:
                self._unlocked = True

        if transitioned:
            logger.info(f"Session {self.session_id} unlocked")
            self._notify_unlocked()
        return transitioned

    def clear(self) -> None:
        with self.lock.write_locked():
            self.profile.clear()
            self._unlocked = False
            self._generation += 1
        logger.info(f"Session {self.session_id} reset to locked")

    def _notify_unlocked(self) -> None:
        with self._observers_lock:
            observers = list(self._observers)
        for callback in observers:
            try:
                callback(self)
            except Exception:
                logger.exception(f"Unlock observer {callback!r} failed")
