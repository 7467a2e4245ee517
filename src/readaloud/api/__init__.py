"""
HTTP API layer.

    - routes.py: /v1/tts, /v1/tts/status, /v1/tts/download, /v1/extract, /health, /metrics
    - schemas.py: Pydantic request/response models
    - dependencies.py: settings and service providers for Depends()
"""
