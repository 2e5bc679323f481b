from __future__ import annotations


class CaptureError(RuntimeError):
    """Base class for failures that abort a capture flow."""


class ConfigurationError(CaptureError):
    pass


class InvalidDraftError(CaptureError):
    pass


class ClassificationTransportError(CaptureError):
    def __init__(self, status_code: int | None, body: str) -> None:
        self.status_code = status_code
        self.body = body
        label = status_code if status_code is not None else "no response"
        super().__init__(f"Gemini API failed ({label}): {body}")


class ClassificationEnvelopeError(CaptureError):
    pass


class ClassificationParseError(CaptureError):
    pass


class SchemaRetrievalError(CaptureError):
    def __init__(self, collection_id: str, status_code: int | None, body: str) -> None:
        self.collection_id = collection_id
        self.status_code = status_code
        self.body = body
        label = status_code if status_code is not None else "no response"
        super().__init__(f"Schema retrieval failed for {collection_id} ({label}): {body}")


class WriteFailure(CaptureError):
    def __init__(self, status_code: int | None, body: str) -> None:
        self.status_code = status_code
        self.body = body
        label = status_code if status_code is not None else "no response"
        super().__init__(f"Notion page creation failed ({label}): {body}")
