from .feedback_throttle import FeedbackThrottle
from .messages import FeedbackGenerator, FeedbackItem

__all__ = ["FeedbackGenerator", "FeedbackItem", "FeedbackThrottle"]
