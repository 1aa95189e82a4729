# backend/responses.py

"""
Shared API error envelope.

Domain failures are returned as:
    {"error": {"code": "<MACHINE_CODE>", "message": "<human text>", ...extra}}
Serializer validation errors keep DRF's default shape.
"""

from rest_framework.response import Response


def error_response(*, code: str, message: str, http_status: int, **extra):
    body = {"code": code, "message": message}
    body.update(extra)
    return Response({"error": body}, status=http_status)
