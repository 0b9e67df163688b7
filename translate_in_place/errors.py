"""
Error kinds raised by the pipeline stages.

Every kind except UserCancelled is shown to the user verbatim as the
message of the Error state.
"""


class PipelineError(Exception):
    """Base class for recoverable pipeline failures."""

    default_message = "Something went wrong."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ImageUnavailable(PipelineError):
    default_message = "Could not retrieve image from host app."


class ImageDecodeFailed(PipelineError):
    default_message = "Could not decode the shared image."


class NoTextDetected(PipelineError):
    default_message = "No text was found in the image."


class NoTranslatableText(PipelineError):
    default_message = "All text is already in the target language."


class OCRServiceFailed(PipelineError):
    default_message = "Failed to perform text recognition."


class TranslationServiceFailed(PipelineError):
    default_message = "Translation failed."


class UserCancelled(PipelineError):
    default_message = "User cancelled."
