import logging
import secrets
import string

from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiTypes
from rest_framework import status, generics
from rest_framework.decorators import api_view
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Parent, Child, GeoFence, LocationPoint
from .serializers import (
    ParentSerializer,
    ChildSerializer,
    ChildCreateSerializer,
    ChildAuthenticateSerializer,
    GeoFenceSerializer,
    GeoFenceCreateSerializer,
    LocationPointSerializer,
)

logger = logging.getLogger(__name__)

FAMILY_CODE_LENGTH = 6
FAMILY_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_family_code(length=FAMILY_CODE_LENGTH):
    """Random uppercase alphanumeric code that no child is using yet."""
    while True:
        code = ''.join(secrets.choice(FAMILY_CODE_ALPHABET) for _ in range(length))
        if not Child.objects.filter(family_code=code).exists():
            return code


def error_response(message, status_code, **extra):
    return Response({'success': False, 'message': message, **extra}, status=status_code)


# ====== HEALTH CHECK ======
@api_view(['GET'])
def api_health_check(request):
    """Simple health check endpoint"""
    return Response({
        "status": "ok",
        "service": "SecureNest API",
        "version": "1.0.0"
    })


# ====== PARENTS ======
class ParentListCreateView(APIView):
    """
    Lists parents and provisions new ones.

    Creation is idempotent on ``clerkId``: provisioning the same identity twice
    returns the existing record.
    """

    @extend_schema(summary="List Parents", responses={200: ParentSerializer(many=True)})
    def get(self, request, *args, **kwargs):
        parents = Parent.objects.all()
        return Response({'success': True, 'parents': ParentSerializer(parents, many=True).data})

    @extend_schema(summary="Create Parent", request=ParentSerializer, responses={200: ParentSerializer, 201: ParentSerializer, 400: OpenApiTypes.OBJECT})
    def post(self, request, *args, **kwargs):
        clerk_id = request.data.get('clerkId')
        if clerk_id:
            existing_parent = Parent.objects.filter(external_auth_id=clerk_id).first()
            if existing_parent:
                logger.info(f"Parent with clerkId {clerk_id} already exists")
                return Response({'success': True, 'parent': ParentSerializer(existing_parent).data})

        serializer = ParentSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid parent data.", status.HTTP_400_BAD_REQUEST, errors=serializer.errors)
        parent = serializer.save()
        logger.info(f"Parent created: {parent.id}")
        return Response({'success': True, 'parent': ParentSerializer(parent).data}, status=status.HTTP_201_CREATED)


class ParentDetailView(APIView):

    @extend_schema(summary="Retrieve Parent by ID", responses={200: ParentSerializer, 404: OpenApiTypes.OBJECT})
    def get(self, request, parent_id, *args, **kwargs):
        parent = Parent.objects.filter(pk=parent_id).first()
        if not parent:
            logger.info(f"Parent with ID {parent_id} not found.")
            return error_response("Parent not found", status.HTTP_404_NOT_FOUND)
        return Response({'success': True, 'parent': ParentSerializer(parent).data})


class ParentByClerkIdView(APIView):
    """
    Resolves an identity-provider user id to the internal parent record,
    including the family codes the real-time subscriber filters on.
    """

    @extend_schema(summary="Retrieve Parent by Clerk ID", responses={200: ParentSerializer, 404: OpenApiTypes.OBJECT})
    def get(self, request, clerk_id, *args, **kwargs):
        parent = Parent.objects.filter(external_auth_id=clerk_id).first()
        if not parent:
            logger.info(f"Parent with clerkId {clerk_id} not found.")
            return error_response("Parent not found", status.HTTP_404_NOT_FOUND)
        return Response({'success': True, 'parent': ParentSerializer(parent).data})


# ====== CHILDREN ======
class ChildAuthenticateView(APIView):
    """
    Signs a child device in with the family code its parent shared.
    """

    @extend_schema(summary="Authenticate Child by Family Code", request=ChildAuthenticateSerializer, responses={200: ChildSerializer, 400: OpenApiTypes.OBJECT})
    def post(self, request, *args, **kwargs):
        serializer = ChildAuthenticateSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid family code", status.HTTP_400_BAD_REQUEST)

        child = Child.objects.filter(family_code=serializer.validated_data['familyCode']).first()
        if not child:
            logger.warning("Child authentication failed for an unknown family code")
            return error_response("Invalid family code", status.HTTP_400_BAD_REQUEST)
        return Response({'success': True, 'child': ChildSerializer(child).data})


class ChildCreateView(APIView):
    """
    Creates a child for a parent and adds the child's family code to the
    parent's association set.
    """

    @extend_schema(summary="Create Child", request=ChildCreateSerializer, responses={201: ChildSerializer, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT})
    def post(self, request, *args, **kwargs):
        serializer = ChildCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid child data.", status.HTTP_400_BAD_REQUEST, errors=serializer.errors)
        data = serializer.validated_data

        parent = Parent.objects.filter(pk=data['parentId']).first()
        if not parent:
            return error_response("Parent not found", status.HTTP_404_NOT_FOUND)

        family_code = data.get('familyCode') or generate_family_code()
        if Child.objects.filter(family_code=family_code).exists():
            return error_response("Family code is already in use", status.HTTP_400_BAD_REQUEST)

        try:
            with transaction.atomic():
                child = Child.objects.create(
                    parent=parent,
                    family_code=family_code,
                    name=data['name'],
                    age=data['age'],
                    profile_picture=data.get('profilePicture', ''),
                    emergency_contacts=data.get('emergencyContacts', []),
                )
                parent.add_family_code(family_code)
        except IntegrityError:
            logger.warning(f"Family code collision while creating child for parent {parent.id}")
            return error_response("Family code is already in use", status.HTTP_400_BAD_REQUEST)

        logger.info(f"Child {child.id} created for parent {parent.id}")
        return Response({'success': True, 'child': ChildSerializer(child).data}, status=status.HTTP_201_CREATED)


class ChildrenByParentView(APIView):

    @extend_schema(summary="List Children of a Parent", responses={200: ChildSerializer(many=True)})
    def get(self, request, parent_id, *args, **kwargs):
        children = Child.objects.filter(parent_id=parent_id)
        return Response({'success': True, 'children': ChildSerializer(children, many=True).data})


class ChildLocationHistoryView(generics.ListAPIView):
    """
    Retrieves the location history recorded for a specific child.
    """
    serializer_class = LocationPointSerializer
    pagination_class = PageNumberPagination

    @extend_schema(
        summary="Retrieve Child Location History",
        parameters=[
            OpenApiParameter(
                name='start_timestamp',
                type=OpenApiTypes.DATETIME,
                location=OpenApiParameter.QUERY,
                required=False,
                description='Filter history from this ISO 8601 timestamp'
            ),
            OpenApiParameter(
                name='end_timestamp',
                type=OpenApiTypes.DATETIME,
                location=OpenApiParameter.QUERY,
                required=False,
                description='Filter history up to this ISO 8601 timestamp'
            )
        ]
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        child = get_object_or_404(Child, pk=self.kwargs.get('child_id'))
        queryset = LocationPoint.objects.filter(child=child).order_by('timestamp')

        start = self._parse_timestamp(self.request.query_params.get('start_timestamp'))
        if start:
            queryset = queryset.filter(timestamp__gte=start)
        end = self._parse_timestamp(self.request.query_params.get('end_timestamp'))
        if end:
            queryset = queryset.filter(timestamp__lte=end)
        return queryset

    @staticmethod
    def _parse_timestamp(value):
        if not value:
            return None
        try:
            parsed = parse_datetime(value)
        except ValueError:
            return None
        if parsed and timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed, timezone.get_default_timezone())
        return parsed


# ====== GEOFENCING ======
class GeoFenceListCreateView(APIView):
    """
    Lists every geofence and creates new ones for a parent.
    """

    @extend_schema(summary="List All Geofences", responses={200: GeoFenceSerializer(many=True), 404: OpenApiTypes.OBJECT})
    def get(self, request, *args, **kwargs):
        geofences = GeoFence.objects.all()
        if not geofences.exists():
            return error_response("No GeoFencing entries found.", status.HTTP_404_NOT_FOUND)
        return Response({
            'success': True,
            'message': "All GeoFencing entries retrieved successfully.",
            'geoFences': GeoFenceSerializer(geofences, many=True).data,
        })

    @extend_schema(summary="Create Geofence", request=GeoFenceCreateSerializer, responses={201: GeoFenceSerializer, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT})
    def post(self, request, *args, **kwargs):
        serializer = GeoFenceCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                "Missing or invalid fields: parentId, name, latitude, longitude and radius are required.",
                status.HTTP_400_BAD_REQUEST,
                errors=serializer.errors,
            )
        data = serializer.validated_data

        parent = Parent.objects.filter(pk=data['parentId']).first()
        if not parent:
            return error_response("Parent not found", status.HTTP_404_NOT_FOUND)

        geofence = GeoFence.objects.create(
            parent=parent,
            name=data['name'],
            latitude=data['latitude'],
            longitude=data['longitude'],
            radius=data['radius'],
        )
        logger.info(f"Geofence {geofence.id} created for parent {parent.id}")
        return Response({
            'success': True,
            'message': "GeoFencing created successfully.",
            'geoFence': GeoFenceSerializer(geofence).data,
        }, status=status.HTTP_201_CREATED)


class GeoFencesByParentView(APIView):

    @extend_schema(summary="List Geofences of a Parent", responses={200: GeoFenceSerializer(many=True), 404: OpenApiTypes.OBJECT})
    def get(self, request, parent_id, *args, **kwargs):
        geofences = GeoFence.objects.filter(parent_id=parent_id, is_active=True)
        if not geofences.exists():
            return error_response("No GeoFencing entries found for the specified parentId.", status.HTTP_404_NOT_FOUND)
        return Response({
            'success': True,
            'message': "GeoFencing entries retrieved successfully.",
            'geoFences': GeoFenceSerializer(geofences, many=True).data,
        })


class GeoFenceDetailView(APIView):

    @extend_schema(summary="Delete Geofence", responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT})
    def delete(self, request, geofence_id, *args, **kwargs):
        deleted, _ = GeoFence.objects.filter(pk=geofence_id).delete()
        if not deleted:
            return error_response("GeoFencing entry not found.", status.HTTP_404_NOT_FOUND)
        logger.info(f"Geofence {geofence_id} deleted")
        return Response({'success': True, 'message': "GeoFencing deleted successfully."})
