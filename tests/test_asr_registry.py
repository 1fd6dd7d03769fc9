"""Tests for recognition backend registry and provider selection."""

from unittest.mock import patch

import pytest

from live_transcription.asr.http_backend import HttpRecognitionBackend
from live_transcription.asr.interface import RecognitionBackend
from live_transcription.asr.registry import RECOGNITION_BACKENDS, get_recognition_backend
from live_transcription.utils.errors import RecognitionError


class TestGetRecognitionBackend:
    """Tests for get_recognition_backend factory function."""

    def test_http_returns_instance(self) -> None:
        """get_recognition_backend('http') returns an HttpRecognitionBackend."""
        with patch.object(HttpRecognitionBackend, "__init__", lambda self, **kw: None):
            backend = get_recognition_backend("http")
        assert isinstance(backend, HttpRecognitionBackend)

    def test_kwargs_are_forwarded(self) -> None:
        """Constructor arguments reach the backend."""
        backend = get_recognition_backend(
            "http", base_url="https://asr.example.com", transcode_pcm=True
        )
        assert backend.base_url == "https://asr.example.com"
        assert backend.transcode_pcm is True

    def test_unknown_provider_raises_recognition_error(self) -> None:
        """get_recognition_backend('unknown') raises RecognitionError."""
        with pytest.raises(
            RecognitionError, match="Unknown recognition provider: 'unknown'"
        ):
            get_recognition_backend("unknown")

    def test_error_message_lists_available_providers(self) -> None:
        """Error message includes names of all registered providers."""
        with pytest.raises(RecognitionError) as exc_info:
            get_recognition_backend("nonexistent")
        message = str(exc_info.value)
        assert "http" in message
        assert "Available:" in message

    def test_custom_backend_retrievable_from_registry(self) -> None:
        """A dynamically added backend class is retrievable."""

        class EchoBackend(RecognitionBackend):
            async def recognize(self, audio, mime_type, priority) -> str:
                return audio.decode()

        original = RECOGNITION_BACKENDS.copy()
        try:
            RECOGNITION_BACKENDS["echo"] = EchoBackend
            backend = get_recognition_backend("echo")
            assert isinstance(backend, EchoBackend)
        finally:
            RECOGNITION_BACKENDS.clear()
            RECOGNITION_BACKENDS.update(original)


class TestRecognitionBackendInterface:
    """Tests for the RecognitionBackend ABC."""

    def test_cannot_instantiate_abstract_backend(self) -> None:
        with pytest.raises(TypeError):
            RecognitionBackend()  # type: ignore[abstract]
