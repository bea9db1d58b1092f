"""
Test suite for the marketplace order import backend.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_order_parser.py -v
"""
