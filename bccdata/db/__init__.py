"""
db/ - Database Layer
====================
Connection pooling, the DatabaseContext registry, and the transaction and
statement handles the repositories execute SQL through.
This layer depends only on models/ and utils/.
"""
