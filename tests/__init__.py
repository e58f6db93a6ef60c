"""
rotatv Test Suite

Test Categories:
- unit/: Fast, isolated tests for selection, voting, chat and presenters
- integration/: HTTP API and application lifespan tests
"""
