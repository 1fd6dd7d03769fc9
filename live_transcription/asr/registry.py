"""Recognition backend registry with configuration-driven provider selection.

Maps provider name strings to backend classes. Use get_recognition_backend()
to instantiate a backend by name with backend-specific configuration.
"""

from live_transcription.asr.http_backend import HttpRecognitionBackend
from live_transcription.asr.interface import RecognitionBackend
from live_transcription.utils.errors import RecognitionError

RECOGNITION_BACKENDS: dict[str, type[RecognitionBackend]] = {
    "http": HttpRecognitionBackend,
}


def get_recognition_backend(provider: str, **kwargs: object) -> RecognitionBackend:
    """Create a recognition backend instance by provider name.

    Args:
        provider: Provider name (e.g., "http").
        **kwargs: Backend-specific configuration passed to the constructor.

    Returns:
        An initialized RecognitionBackend instance.

    Raises:
        RecognitionError: If the provider name is not registered.
    """
    backend_cls = RECOGNITION_BACKENDS.get(provider)
    if not backend_cls:
        available = ", ".join(sorted(RECOGNITION_BACKENDS.keys()))
        raise RecognitionError(
            f"Unknown recognition provider: '{provider}'. Available: {available}"
        )
    return backend_cls(**kwargs)
