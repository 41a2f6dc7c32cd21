"""
nowgame Test Suite
==================

Test Organization
-----------------
- tests/unit/          : Fast unit tests on the in-memory driver and mocks
- tests/unit/domain/   : Pure dataclass tests for the domain models
- tests/integration/   : SQLite (aiosqlite) storage and the full ApplicationContext

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test business logic
- Integration tests: Slower, test real storage and startup wiring
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
