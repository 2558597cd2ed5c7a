"""
Space API Views.

Implements:
- GET/POST /spaces/ - List the caller's spaces / create a space
- GET /spaces/creation-status/ - Remaining space slots
- GET/PUT/PATCH/DELETE /spaces/{id}/ - Retrieve / rename / delete (cascades to products)
"""
import logging

from rest_framework import status
from rest_framework.views import APIView

from core.responses import api_response
from . import services
from .serializers import SpaceSerializer, SpaceWriteSerializer

logger = logging.getLogger(__name__)


class SpaceListCreateView(APIView):
    """
    GET: List the authenticated user's spaces, newest first
    POST: Create a new space

    Request Body (POST):
    {
        "name": "Warehouse A"
    }
    """

    def get(self, request):
        spaces = services.list_spaces(request.user)
        return api_response(SpaceSerializer(spaces, many=True).data)

    def post(self, request):
        serializer = SpaceWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        space = services.create_space(request.user, serializer.validated_data['name'])
        return api_response(
            SpaceSerializer(space).data,
            message='Space created successfully',
            status=status.HTTP_201_CREATED
        )


class SpaceCreationStatusView(APIView):
    """
    GET: How many spaces the caller has and how many more may be created.
    """

    def get(self, request):
        return api_response(services.space_creation_status(request.user))


class SpaceDetailView(APIView):
    """
    GET: Retrieve a space
    PUT/PATCH: Rename a space
    DELETE: Delete a space and every product in it
    """

    def get(self, request, space_id):
        space = services.get_space(space_id, owner=request.user)
        return api_response(SpaceSerializer(space).data)

    def put(self, request, space_id):
        serializer = SpaceWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        space = services.rename_space(space_id, serializer.validated_data['name'], owner=request.user)
        return api_response(SpaceSerializer(space).data, message='Space updated successfully')

    patch = put

    def delete(self, request, space_id):
        services.delete_space(space_id, owner=request.user)
        return api_response(message='Space deleted successfully')
