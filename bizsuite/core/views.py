import logging

from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .models import AuditLog
from .serializers import UserSerializer, RegisterSerializer, BusinessSerializer, AuditLogSerializer
from .utils import create_audit_log, get_request_business, paginate

logger = logging.getLogger(__name__)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        # Ensure user is active
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['business_id'] = user.business_id
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Register a business and its owner, returning a token pair"""
    serializer = RegisterSerializer(data=request.data)
    if not serializer.is_valid():
        errors = serializer.errors
        if 'username' in errors and 'Username already exists' in [str(e) for e in errors['username']]:
            return Response({'message': 'Username already exists', **errors}, status=status.HTTP_400_BAD_REQUEST)
        return Response(errors, status=status.HTTP_400_BAD_REQUEST)

    user = serializer.save()
    token = CustomTokenObtainPairSerializer.get_token(user)
    create_audit_log(
        request=request,
        action='create',
        model_name='Business',
        object_id=str(user.business_id),
        object_name=user.business.name,
        user=user,
        business=user.business,
    )
    logger.info(f"Registered business {user.business_id} for user {user.username}")
    return Response({
        'user': UserSerializer(user).data,
        'business': BusinessSerializer(user.business).data,
        'access': str(token.access_token),
        'refresh': str(token),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with nested business"""
    return Response(UserSerializer(request.user).data)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def business_detail(request):
    """Retrieve or update the caller's business"""
    business = get_request_business(request)

    if request.method == 'GET':
        return Response(BusinessSerializer(business).data)

    serializer = BusinessSerializer(business, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        create_audit_log(
            request=request,
            action='update',
            model_name='Business',
            object_id=str(business.id),
            object_name=business.name,
            changes={'fields': sorted(request.data.keys())},
        )
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs of the caller's business with filtering"""
    business = get_request_business(request)
    queryset = AuditLog.objects.filter(business=business).select_related('user')

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model_name', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    reference = request.query_params.get('object_reference', None)
    if reference:
        queryset = queryset.filter(object_reference=reference)

    for param, lookup in (('date_from', 'created_at__date__gte'), ('date_to', 'created_at__date__lte')):
        value = request.query_params.get(param, None)
        if not value:
            continue
        try:
            parsed = parse_date(value)
        except ValueError:
            parsed = None
        if parsed is None:
            return Response({'message': f'Invalid {param}. Use YYYY-MM-DD'}, status=status.HTTP_400_BAD_REQUEST)
        queryset = queryset.filter(**{lookup: parsed})

    page_obj, meta = paginate(queryset.order_by('-created_at'), request, default_limit=50)
    serializer = AuditLogSerializer(page_obj, many=True)
    return Response({**meta, 'results': serializer.data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    business = get_request_business(request)
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if audit_log.business_id != business.id:
        return Response({'message': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    return Response(AuditLogSerializer(audit_log).data)
