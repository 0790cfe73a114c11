"""Error taxonomy for Imagen.

Two families matter to callers:

- **Submission blockers** (:class:`MissingCredential`, :class:`EmptyPrompt`)
  stop a generation request locally, before anything is sent.
- **Unit failures** (:class:`RemoteRequestFailed`, :class:`NoImageInResponse`)
  are raised by the generation client for a single image request and are
  counted against the batch rather than propagated.

Store errors (:class:`StorePersistenceFailed`, :class:`StoreLoadFailed`) are
raised by the record store and always handled by the gallery, which logs them
and keeps the in-memory view responsive.
"""


class ImagenError(Exception):
    """Base class for all Imagen errors.

    The message is intended to be displayed directly to the user.
    """

    pass


class MissingCredential(ImagenError):
    """No API key is configured."""

    def __init__(self, message: str = "Please enter your OpenRouter API key"):
        super().__init__(message)


class EmptyPrompt(ImagenError):
    """The prompt is empty or whitespace only."""

    def __init__(self, message: str = "Please enter a prompt"):
        super().__init__(message)


class ImageNotFound(ImagenError):
    """No gallery record has the requested id."""

    def __init__(self, record_id: str):
        super().__init__(f"Image not found: {record_id}")
        self.record_id = record_id


class GenerationFailed(ImagenError):
    """A single generation unit failed."""

    pass


class RemoteRequestFailed(GenerationFailed):
    """The API returned a non-success status or the transport failed.

    Attributes:
        status_code: HTTP status of the response, or ``None`` for transport
            errors.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NoImageInResponse(GenerationFailed):
    """The response was parsed but carries no recognisable image."""

    def __init__(
        self, message: str = "No image in response. Check the logs for the full API response."
    ):
        super().__init__(message)


class StoreError(ImagenError):
    """Base class for record store failures."""

    pass


class StorePersistenceFailed(StoreError):
    """A durable write, delete, or clear failed."""

    pass


class StoreLoadFailed(StoreError):
    """Reading records from the store failed."""

    pass
