"""
Integration tests for the inbound mail relay.

These tests use mocked AWS services and an in-memory Discord API to test
the complete SES -> SNS -> Lambda -> Discord flow.
"""
