import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .location import format_distance, nearby_mentors
from .serializer import LocationSerializer, LocationUpdateSerializer, MentorSummarySerializer, NearbySearchSerializer

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def update_location(request):
    serializer = LocationUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    user = request.user
    user.latitude = data['latitude']
    user.longitude = data['longitude']
    user.city = data.get('city') or f"Location ({data['latitude']:.4f}, {data['longitude']:.4f})"
    user.state = data.get('state', user.state)
    user.country = data.get('country') or user.country or 'India'
    user.location_updated_at = timezone.now()
    user.save(update_fields=['latitude', 'longitude', 'city', 'state', 'country', 'location_updated_at'])

    logger.info(f"Location updated for user {user.id}: {user.city}")
    return Response({
        'success': True,
        'message': 'Location updated successfully',
        'location': LocationSerializer(user).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_location(request):
    location = LocationSerializer(request.user).data
    return Response({
        'success': True,
        'location': location if location['has_location'] else None,
        'has_location': location['has_location'],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def nearby(request):
    """Mentors within max_distance_km of a point, nearest first"""
    serializer = NearbySearchSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    found = nearby_mentors(
        data['latitude'], data['longitude'],
        max_distance_km=data['max_distance_km'],
        exclude_user=request.user,
    )
    return Response({
        'success': True,
        'count': len(found),
        'mentors': [
            {
                **MentorSummarySerializer(mentor).data,
                'distance_km': round(distance, 2),
                'distance_text': format_distance(distance),
            }
            for mentor, distance in found
        ],
    })
