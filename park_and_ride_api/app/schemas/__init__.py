"""
Pydantic schemas package.

Each module defines request and response models for one domain
(users, parking, rides, payments, notifications).
"""
