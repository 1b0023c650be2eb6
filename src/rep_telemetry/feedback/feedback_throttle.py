from typing import Any, Dict, Iterable, List, Optional

from .messages import FeedbackItem

_DEFAULT_LIMIT = object()


class FeedbackThrottle:
    """Suppresses repeated messages and caps how many are surfaced per frame."""

    def __init__(self, cooldown_seconds: float = 3.0, max_messages: Optional[int] = 2):
        """
        Args:
            cooldown_seconds: A message text is not repeated within this window
            max_messages: Most severe messages surfaced per frame (None for no cap)
        """
        self.cooldown_seconds = cooldown_seconds
        self.max_messages = max_messages
        self._last_emitted: Dict[str, float] = {}

    def is_cooling_down(self, text: str, now: float) -> bool:
        last = self._last_emitted.get(text)
        # A clock that moved backwards does not unblock a message.
        return last is not None and now - last < self.cooldown_seconds

    def filter(self, candidates: Iterable[FeedbackItem], now: float, limit: Any = _DEFAULT_LIMIT) -> List[str]:
        """
        Pick the messages to surface this frame.

        Args:
            candidates: Severity-tagged messages produced for this frame
            now: Frame timestamp in seconds
            limit: Override for max_messages; None surfaces everything not cooling down

        Returns:
            Message texts, most severe first. Only these are stamped as emitted.
        """
        if limit is _DEFAULT_LIMIT:
            limit = self.max_messages
        ranked = sorted(candidates, key=lambda item: item.severity, reverse=True)
        surfaced: List[str] = []
        for item in ranked:
            if limit is not None and len(surfaced) >= limit:
                break
            if item.text in surfaced or self.is_cooling_down(item.text, now):
                continue
            surfaced.append(item.text)
        for text in surfaced:
            self._last_emitted[text] = now
        return surfaced

    def reset(self) -> None:
        self._last_emitted.clear()
