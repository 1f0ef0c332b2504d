import logging
import secrets

from django.contrib.auth import get_user_model
from rest_framework import generics, status, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .emails import send_password_reset_otp
from .models import OTP
from .serializer import (
    SignupSerializer, LoginSerializer, GoogleLoginSerializer, ForgotPasswordSerializer,
    VerifyOTPSerializer, ResetPasswordSerializer, ProfileSerializer, PublicUserSerializer, auth_payload
)
from .sheets import get_professors, DirectoryUnavailable

logger = logging.getLogger(__name__)

User = get_user_model()


class IsMentor(permissions.BasePermission):
    message = 'Only mentors can access this'

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == User.MENTOR


class SignupView(generics.CreateAPIView):
    serializer_class = SignupSerializer
    permission_classes = [AllowAny]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info(f"Account created for user: {user.email} (ID: {user.id})")
        return Response(auth_payload(user), status=status.HTTP_201_CREATED)


class LoginView(generics.GenericAPIView):
    serializer_class = LoginSerializer
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        logger.info(f"Login successful for user: {serializer.validated_data['user']['email']}")
        return Response(serializer.validated_data, status=status.HTTP_200_OK)


class GoogleLoginView(generics.GenericAPIView):
    serializer_class = GoogleLoginSerializer
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        logger.info(f"Google login successful for user: {serializer.validated_data['user']['email']}")
        return Response(serializer.validated_data, status=status.HTTP_200_OK)


class ForgotPasswordView(generics.GenericAPIView):
    serializer_class = ForgotPasswordSerializer
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = User.objects.get(email__iexact=serializer.validated_data['email'])

        OTP.objects.filter(user=user, purpose=OTP.PASSWORD_RESET, is_used=False).update(is_used=True)
        otp = OTP.objects.create(user=user, otp_code=f"{secrets.randbelow(10 ** 6):06d}")
        send_password_reset_otp(user, otp.otp_code)
        logger.info(f"Password reset OTP issued for user {user.id}")
        return Response({'message': 'OTP sent to your email.'}, status=status.HTTP_200_OK)


class VerifyOTPView(generics.GenericAPIView):
    serializer_class = VerifyOTPSerializer
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response({'message': 'OTP verified.'}, status=status.HTTP_200_OK)


class ResetPasswordView(generics.GenericAPIView):
    serializer_class = ResetPasswordSerializer
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data['user']
        otp = serializer.validated_data['otp']

        user.set_password(serializer.validated_data['new_password'])
        user.save(update_fields=['password'])
        otp.is_used = True
        otp.save(update_fields=['is_used'])
        logger.info(f"Password reset completed for user {user.id}")
        return Response({'message': 'Password has been reset.'}, status=status.HTTP_200_OK)


class ProfileMeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = ProfileSerializer(request.user)
        return Response(serializer.data)

    def put(self, request):
        serializer = ProfileSerializer(
            request.user,
            data=request.data,
            partial=True
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Profile updated for user {request.user.id}: {sorted(serializer.validated_data)}")
        return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_user_summary(request, user_id):
    """Public profile card for any user"""
    try:
        user = User.objects.get(id=user_id, is_active=True)
    except User.DoesNotExist:
        return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(PublicUserSerializer(user).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def get_iim_professors(request, campus):
    """Faculty directory rows for one campus tab of the sheet"""
    try:
        professors = get_professors(campus)
    except DirectoryUnavailable:
        return Response({'error': 'Failed to fetch professor data'}, status=status.HTTP_502_BAD_GATEWAY)
    return Response({'campus': campus, 'count': len(professors), 'professors': professors})
