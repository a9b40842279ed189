"""Unit tests: policy, tokens, models and services called directly."""
