"""
Test suite for the Coin Predictions System.

Test Structure:
    - conftest.py: Shared fixtures and factories
    - fakes.py: In-memory prediction store and stub oracle
    - test_models.py: Pydantic models, classification and validators
    - test_oracle.py: Price oracle client against a mock transport
    - test_prediction_repository.py: Conditional writes and queries
    - test_resolution_service.py: Resolution passes, concurrency, deadlines
    - test_leaderboard_service.py: Ranking and tie-breaks
    - test_api.py: HTTP surface and bearer authentication
    - test_cli.py: Command line interface

Running Tests:
    pytest                          # Run all tests
    pytest -v                       # Verbose output
    TEST_MONGO_URI=... pytest       # Include MongoDB integration tests
"""
