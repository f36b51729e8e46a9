"""Service layer for business logic.

Layer hierarchy:
    Routes (HTTP) -> Services (Business Logic) -> Repositories (Database)

Services validate and normalize webhook payloads, orchestrate repository
calls and raise domain exceptions. They know nothing about status codes or
response formatting; routes do the translation.
"""
