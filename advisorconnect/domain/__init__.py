"""
Domain layer

Each domain keeps the same shape:
- repository.py: database queries (static methods, no business rules)
- service.py: business rules, raises errors from advisorconnect.errors
- router.py: FastAPI endpoints
- schemas.py: request/response models
"""
