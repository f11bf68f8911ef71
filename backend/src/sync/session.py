"""Client-side session state with change notification."""
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """The signed-in user as the client sees it."""

    id: UUID
    email: str | None = None


SessionListener = Callable[[SessionUser | None], Awaitable[None]]


class SessionContext:
    """
    Holds the current user and notifies listeners when the user changes.

    Listeners are awaited in subscription order. Setting the same user again
    (same id) updates the stored value without notifying, so collections do
    not reload on token refreshes.
    """

    def __init__(self, user: SessionUser | None = None) -> None:
        self._user = user
        self._listeners: list[SessionListener] = []

    @property
    def user(self) -> SessionUser | None:
        return self._user

    @property
    def user_id(self) -> UUID | None:
        return self._user.id if self._user is not None else None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener for user changes.

        Returns:
            A callable that removes the listener. Calling it twice is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def set_user(self, user: SessionUser | None) -> None:
        """Replace the current user, notifying listeners if the user id changed."""
        previous_id = self.user_id
        self._user = user
        if self.user_id == previous_id:
            return
        logger.debug("Session user changed from %s to %s", previous_id, self.user_id)
        for listener in list(self._listeners):
            await listener(user)

    async def clear(self) -> None:
        """Sign out."""
        await self.set_user(None)
