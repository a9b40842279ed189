"""
Test suite for the TestFlow backend.

This package contains:
- unit/: policy, token, model and service tests without HTTP round-trips
- integration/: endpoint tests through the Flask test client
"""
