"""
Speech provider and long-audio job components.

    - provider.py: Google Cloud Text-to-Speech (short MP3 + long-audio jobs)
    - storage.py: artifact naming and download-once retrieval from Cloud Storage
    - cache.py: in-memory LRU of terminal job statuses
    - jobs.py: job, status and retrieval value types
    - credentials.py: service account loading shared by both clients
"""
