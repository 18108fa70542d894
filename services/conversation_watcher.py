import asyncio
import inspect
from typing import Awaitable, Callable, Dict, Union

from models.exceptions import AlreadyGone, NotFound, PermissionDenied
from repos.conversation_repo import ConversationRepository
from logger.logger import logger

GoneCallback = Callable[[str], Union[None, Awaitable[None]]]


class Subscription:
    """Handle returned by on_conversation_gone"""

    def __init__(self, conversation_id: str, task: asyncio.Task):
        self.conversation_id = conversation_id
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        self._task.cancel()


class ConversationWatcher:
    """
    Notifies callers once a conversation disappears.

    Polls the repository every poll_interval seconds; a change-stream based
    watcher can replace the loop without changing on_conversation_gone.
    """

    def __init__(self, conversation_repo: ConversationRepository, poll_interval: float = 10):
        self.conversation_repo = conversation_repo
        self.poll_interval = poll_interval
        self._subscriptions: Dict[int, Subscription] = {}

    async def _is_gone(self, conversation_id: str) -> bool:
        try:
            return not await self.conversation_repo.exists(conversation_id)
        except (AlreadyGone, NotFound, PermissionDenied):
            return True

    async def _watch(self, conversation_id: str, callback: GoneCallback) -> None:
        while True:
            try:
                gone = await self._is_gone(conversation_id)
            except Exception as e:
                logger.warning(f"Watcher check for {conversation_id} failed: {e}")
                gone = False
            if gone:
                break
            await asyncio.sleep(self.poll_interval)

        logger.info(f"Conversation {conversation_id} is gone")
        try:
            result = callback(conversation_id)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Conversation-gone callback for {conversation_id} failed: {e}")

    def on_conversation_gone(self, conversation_id: str, callback: GoneCallback) -> Subscription:
        """Call callback(conversation_id) at most once, when the conversation no longer exists"""
        task = asyncio.get_running_loop().create_task(self._watch(conversation_id, callback))
        subscription = Subscription(conversation_id, task)
        key = id(subscription)
        self._subscriptions[key] = subscription
        task.add_done_callback(lambda _: self._subscriptions.pop(key, None))
        return subscription

    def close(self) -> None:
        for subscription in list(self._subscriptions.values()):
            subscription.cancel()
        self._subscriptions.clear()
