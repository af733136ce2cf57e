from __future__ import annotations


class AdvisorError(Exception):
    """
    Base class for client-side failures.

    ``user_message`` is what ends up in the chat window; the exception text
    keeps the technical detail for logs.
    """

    user_message = "Something went wrong. Please try again."

    def __init__(self, detail: str = "", user_message: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail
        if user_message is not None:
            self.user_message = user_message


class CatalogLoadError(AdvisorError):
    user_message = "We couldn't load the product catalog. Please refresh the page."


class EmptySelectionError(AdvisorError):
    user_message = "Please select at least one product before generating a routine."


class ConfigurationError(AdvisorError):
    user_message = (
        "The advisor isn't connected yet: no relay endpoint is configured. "
        "Set ADVISOR_RELAY_URL or enter the relay URL in the sidebar."
    )


class TransportError(AdvisorError):
    user_message = (
        "Sorry, I couldn't reach the advisor service just now. "
        "Please send your request again."
    )


class PersistenceError(AdvisorError):
    user_message = "Saved session data was unreadable and has been reset."
