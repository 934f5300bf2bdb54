"""
Probabilistic classifier integration.

This package contains:
- classify: Deadline-bounded classifier calls with answer validation
- client: Classifier gateway REST client
- prompts: Single-answer prompt builders
"""
