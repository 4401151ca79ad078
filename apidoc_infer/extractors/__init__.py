"""
Extractors Module - Built-in extractor plugins.

- request: request body candidates (annotations, rule sets, typed bodies, captures)
- response: success responses (annotations, return types/statements, captures)
- error_responses: error statuses (guards, validation, raised exceptions)
- query: query parameters (annotations, request args, signatures, pagination, captures)
"""
