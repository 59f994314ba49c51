from rest_framework import status as http_status
from rest_framework.response import Response


def success(data=None, message=None, pagination=None, status=http_status.HTTP_200_OK):
    body = {"status": "success"}
    if data is not None:
        body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination
    if message:
        body["message"] = message
    return Response(body, status=status)
