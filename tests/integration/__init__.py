"""
API test package for TestFlow.

Tests use the Flask test client and cover:
- Authentication and bearer-token handling
- Role-gated user and task CRUD
- Task lifecycle rules visible through the API
- End-to-end role scenarios
"""
