"""
Crine backend package.

Data-access layer over Cloud Firestore for user profiles, customers, drawings,
backup history, bug reports and public customer forms. The facade is exposed
both as Firebase callable functions (see main.py) and as a FastAPI service.
"""
