"""
Cortex Catalog Test Suite
=========================

Test Organization
-----------------
- tests/unit/          : Fast unit tests with fakes and mocks
- tests/integration/   : Component tests over an in-memory database, plus
                         testcontainers-backed tests (skipped without Docker)

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test pure logic and client contracts
- Integration tests: Exercise the wired component graph end to end
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
