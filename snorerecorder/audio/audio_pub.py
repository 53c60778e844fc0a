"""Event publisher module for pub/sub notifications."""

import logging
from pubsub import pub

logger = logging.getLogger(__name__)

# Topic names and the keyword arguments sent with them
SESSION_STARTED = "session_started"        # session
SESSION_STOPPED = "session_stopped"        # session
CAPTURE_VOLUME = "capture_volume"          # volume
ANALYSIS_PROGRESS = "analysis_progress"    # progress
ANALYSIS_COMPLETED = "analysis_completed"  # session, result
ANALYSIS_FAILED = "analysis_failed"        # session, error


class EventPublisher:
    """Publishes capture and analysis events using pubsub.pub."""

    def __init__(self, enabled: bool = True):
        """Initialize event publisher.

        Args:
            enabled: When False, events are dropped (used by headless tests)
        """
        self.enabled = enabled
        logger.info(f"EventPublisher initialized (enabled={enabled})")

    def publish(self, topic: str, **payload) -> None:
        """Publish an event to a pub/sub topic.

        Listener exceptions are logged and never propagate into the
        capture or analysis threads.
        """
        if not self.enabled:
            return
        try:
            pub.sendMessage(topic, **payload)
        except Exception as e:
            logger.error(f"Listener for {topic} failed: {e}", exc_info=True)
