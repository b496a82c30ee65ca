"""
LinkMe Backend - Middleware Package
=====================================

Execution order for a request (main.create_app adds them in reverse):

    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    - Rate Limit first: a rejected request costs no further work
    - Request ID before the access log so every log line carries the id
"""
