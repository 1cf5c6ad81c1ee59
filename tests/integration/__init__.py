"""Integration tests for mealbook.

These tests require a running PostgreSQL server, set through
POSTGRES_TEST_URL. Tables are dropped and recreated for every test.

Run with: pytest tests/integration/ -v -m integration
Skip with: pytest -m "not integration"
"""
