"""Error taxonomy for the daily message delivery pipeline.

Channel failures (transient or permanent) are not exceptions: senders
return a ChannelOutcome. The exceptions below cover the cases where a
recipient or the whole invocation cannot proceed.
"""


class DeliveryPipelineError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(DeliveryPipelineError):
    """Required configuration is missing (database URL, VAPID keys, API keys).

    Aborts the invocation before any recipient is processed.
    """


class DataStoreError(DeliveryPipelineError):
    """The datastore could not be reached or queried.

    Raised only from operations the run cannot continue without.
    """


class RecipientDataError(DeliveryPipelineError):
    """Preference or profile data for a recipient is missing at send time."""

    def __init__(self, user_id, message: str) -> None:
        super().__init__(message)
        self.user_id = user_id
        self.message = message


class DuplicateDeliveryError(DeliveryPipelineError):
    """A sent record already exists for this (user, day)."""

    def __init__(self, user_id, delivery_date) -> None:
        super().__init__(
            f"Daily message already recorded as sent for {user_id} on {delivery_date}"
        )
        self.user_id = user_id
        self.delivery_date = delivery_date
