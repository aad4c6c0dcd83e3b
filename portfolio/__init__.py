"""
Backend package for the portfolio content API.

This package provides a FastAPI application over two interchangeable content
stores: a document store (MongoDB, image bytes embedded in the image
documents) and a relational metadata store (SQLAlchemy) paired with an
S3-compatible blob bucket.
"""
