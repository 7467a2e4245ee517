"""
Client side of readaloud.

    - api_client.py: ReadAloudClient, httpx wrapper for the HTTP API
    - poller.py: JobPoller, bounded poll-until-complete state machine
"""
from .api_client import ReadAloudClient, SynthesisOutcome
from .poller import JobPoller, PollState

__all__ = [
    "ReadAloudClient",
    "SynthesisOutcome",
    "JobPoller",
    "PollState",
]
