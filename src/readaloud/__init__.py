"""
readaloud: text and web articles to speech with Google Cloud Text-to-Speech.

Short texts are synthesized synchronously and returned as MP3. Long texts
become long-audio jobs: the output is written to Cloud Storage, polled
until done, downloaded once and deleted.

Components:
    - API: FastAPI service (/v1/tts, /v1/tts/status, /v1/tts/download, /v1/extract)
    - Client: httpx API client and a bounded job poller
    - CLI: ``readaloud`` command for text, files and URLs

Example Usage:
    >>> from readaloud.client import ReadAloudClient
    >>>
    >>> with ReadAloudClient("http://localhost:8000") as client:
    ...     outcome = client.synthesize("Hello there")
    >>> outcome.audio[:3]
    b'ID3'
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
