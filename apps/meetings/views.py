from django.db.models import Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import OpenApiParameter, extend_schema

from .models import Meeting, Property, Shareholder, UndoRequest
from .permissions import IsMeetingAdmin
from .serializers import (
    BulkUncheckInSerializer,
    CheckInResultSerializer,
    CheckInSerializer,
    CommentSerializer,
    DesigneeSerializer,
    ManualCheckInSerializer,
    MeetingCreateSerializer,
    MeetingSerializer,
    MeetingStatsSerializer,
    PropertyCreateSerializer,
    PropertyDetailsSerializer,
    PropertySerializer,
    PropertyTransferSerializer,
    RosterImportResultSerializer,
    RosterImportSerializer,
    ShareholderCreateSerializer,
    ShareholderListSerializer,
    ShareholderNameSerializer,
    ShareholderSerializer,
    TransferResultSerializer,
    TransferSerializer,
    UndoRequestCreateSerializer,
    UndoRequestSerializer,
    UndoResolveSerializer,
)

from apps.meetings.services import (
    bulk_uncheck_in,
    check_in_shareholder,
    clear_designee,
    create_meeting,
    create_property,
    create_shareholder,
    delete_meeting,
    delete_property,
    get_comment,
    get_meeting_stats,
    get_next_meeting,
    get_shareholder_details,
    import_roster,
    list_property_transfers,
    list_shareholders,
    list_undo_requests,
    manual_check_in,
    mark_mailers_generated,
    request_undo,
    resolve_undo,
    set_comment,
    set_designee,
    transfer_property,
    update_property_details,
    update_shareholder_name,
    # Exceptions
    AuthenticationRequiredError,
    DuplicateShareholderIdError,
    InsufficientPermissionsError,
    InvalidStateError,
    MeetingsServiceError,
    NotFoundError,
    ServiceValidationError,
    StorageError,
)


ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (ServiceValidationError, status.HTTP_400_BAD_REQUEST),
    (DuplicateShareholderIdError, status.HTTP_409_CONFLICT),
    (AuthenticationRequiredError, status.HTTP_401_UNAUTHORIZED),
    (InsufficientPermissionsError, status.HTTP_403_FORBIDDEN),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def error_response(error: MeetingsServiceError) -> Response:
    """Convert a service exception into a JSON error response."""
    status_code = next(
        (code for exc_class, code in ERROR_STATUS if isinstance(error, exc_class)),
        status.HTTP_400_BAD_REQUEST
    )
    return Response({'error': str(error)}, status=status_code)


class RosterPagination(PageNumberPagination):
    """Pagination for shareholder and property lists."""
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 500


# =============================================================================
# Meetings
# =============================================================================

class MeetingViewSet(viewsets.ModelViewSet):
    """
    ViewSet for meetings.

    list: All meetings, newest first
    create: Create a meeting (admin only)
    retrieve: Get a meeting with its counters
    update / partial_update: Change year, date or data source (admin only)
    destroy: Delete a meeting with its roster (admin only)
    """

    queryset = Meeting.objects.all()
    serializer_class = MeetingSerializer
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action in ['create', 'update', 'partial_update', 'destroy']:
            return [IsAuthenticated(), IsMeetingAdmin()]
        return [IsAuthenticated()]

    def get_serializer_class(self):
        if self.action == 'create':
            return MeetingCreateSerializer
        return MeetingSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            meeting = create_meeting(actor=request.user, **serializer.validated_data)
        except MeetingsServiceError as e:
            return error_response(e)

        return Response(MeetingSerializer(meeting).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        try:
            delete_meeting(meeting_id=self.kwargs['pk'], actor=request.user)
        except MeetingsServiceError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(responses={200: MeetingStatsSerializer})
    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        """Attendance and roster figures for the dashboard."""
        try:
            stats = get_meeting_stats(meeting_id=pk)
        except MeetingsServiceError as e:
            return error_response(e)
        return Response(MeetingStatsSerializer(stats).data)

    @extend_schema(request=RosterImportSerializer, responses={201: RosterImportResultSerializer})
    @action(
        detail=True,
        methods=['post'],
        url_path='import',
        url_name='import',
        permission_classes=[IsAuthenticated, IsMeetingAdmin]
    )
    def import_rows(self, request, pk=None):
        """Replace the meeting roster with parsed spreadsheet rows (admin only)."""
        serializer = RosterImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = import_roster(
                meeting_id=pk,
                rows=serializer.validated_data['rows'],
                actor=request.user
            )
        except MeetingsServiceError as e:
            return error_response(e)

        return Response(RosterImportResultSerializer(result).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={200: MeetingSerializer})
    @action(
        detail=True,
        methods=['post'],
        url_path='mailers-generated',
        url_name='mailers-generated',
        permission_classes=[IsAuthenticated, IsMeetingAdmin]
    )
    def mailers_generated(self, request, pk=None):
        """Record that mailers were produced (admin only)."""
        try:
            meeting = mark_mailers_generated(meeting_id=pk, actor=request.user)
        except MeetingsServiceError as e:
            return error_response(e)
        return Response(MeetingSerializer(meeting).data)

    @extend_schema(responses={200: MeetingSerializer})
    @action(detail=False, methods=['get'], url_path='next', url_name='next')
    def next_meeting(self, request):
        """Earliest upcoming meeting."""
        meeting = get_next_meeting()
        if meeting is None:
            return Response({'error': 'No upcoming meeting'}, status=status.HTTP_404_NOT_FOUND)
        return Response(MeetingSerializer(meeting).data)


# =============================================================================
# Shareholders
# =============================================================================

class ShareholderViewSet(
    mixins.ListModelMixin,
    viewsets.GenericViewSet
):
    """
    ViewSet for shareholders, addressed by their external shareholder id.

    list: Shareholders with property counts (filters: meeting, search)
    create: Add a shareholder by hand
    retrieve: Shareholder with properties and counts
    partial_update: Rename a shareholder
    """

    queryset = Shareholder.objects.all()
    serializer_class = ShareholderListSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = RosterPagination
    lookup_field = 'shareholder_id'

    def get_queryset(self):
        return list_shareholders(
            meeting_id=self.request.query_params.get('meeting'),
            search=self.request.query_params.get('search'),
        )

    @extend_schema(
        parameters=[
            OpenApiParameter('meeting', int, description='Filter by meeting id'),
            OpenApiParameter('search', str, description='Match name or shareholder id'),
        ]
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=ShareholderCreateSerializer, responses={201: ShareholderSerializer})
    def create(self, request, *args, **kwargs):
        serializer = ShareholderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        try:
            shareholder = create_shareholder(
                meeting_id=data['meeting_id'],
                name=data['name'],
                actor=request.user,
                shareholder_id=data.get('shareholder_id') or None,
                owner_mailing_address=data['owner_mailing_address'],
                owner_city_state_zip=data['owner_city_state_zip'],
            )
        except MeetingsServiceError as e:
            return error_response(e)

        return Response(ShareholderSerializer(shareholder).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, shareholder_id=None):
        try:
            details = get_shareholder_details(shareholder_id=shareholder_id)
        except MeetingsServiceError as e:
            return error_response(e)

        return Response({
            'shareholder': ShareholderSerializer(details['shareholder']).data,
            'properties': PropertySerializer(details['properties'], many=True).data,
            'total_properties': details['total_properties'],
            'checked_in_properties': details['checked_in_properties'],
        })

    @extend_schema(request=ShareholderNameSerializer, responses={200: ShareholderSerializer})
    def partial_update(self, request, shareholder_id=None):
        serializer = ShareholderNameSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            shareholder = update_shareholder_name(
                shareholder_id=shareholder_id,
                name=serializer.validated_data['name'],
                actor=request.user
            )
        except MeetingsServiceError as e:
            return error_response(e)

        return Response(ShareholderSerializer(shareholder).data)

    @extend_schema(request=DesigneeSerializer, responses={200: ShareholderSerializer})
    @action(detail=True, methods=['post', 'delete'])
    def designee(self, request, shareholder_id=None):
        """Set (POST) or clear (DELETE) the shareholder's proxy."""
        try:
            if request.method == 'DELETE':
                shareholder = clear_designee(shareholder_id=shareholder_id, actor=request.user)
            else:
                serializer = DesigneeSerializer(data=request.data)
                serializer.is_valid(raise_exception=True)
                shareholder = set_designee(
                    shareholder_id=shareholder_id,
                    designee=serializer.validated_data['designee'],
                    actor=request.user
                )
        except MeetingsServiceError as e:
            return error_response(e)

        return Response(ShareholderSerializer(shareholder).data)

    @extend_schema(request=CommentSerializer, responses={200: CommentSerializer})
    @action(detail=True, methods=['get', 'post'])
    def comment(self, request, shareholder_id=None):
        """Read (GET) or replace (POST) the desk comment."""
        try:
            if request.method == 'GET':
                return Response({'comment': get_comment(shareholder_id=shareholder_id)})

            serializer = CommentSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            shareholder = set_comment(
                shareholder_id=shareholder_id,
                comment=serializer.validated_data['comment'],
                actor=request.user
            )
        except MeetingsServiceError as e:
            return error_response(e)

        return Response({'comment': shareholder.comment})


# =============================================================================
# Properties
# =============================================================================

class PropertyViewSet(viewsets.ModelViewSet):
    """
    ViewSet for properties.

    list: Properties (filters: shareholder, meeting, search)
    create: Add a property to an existing shareholder
    retrieve: Get a property
    update / partial_update: Edit descriptive fields (never ownership)
    destroy: Delete a property (admin only)
    """

    queryset = Property.objects.select_related('shareholder')
    serializer_class = PropertySerializer
    permission_classes = [IsAuthenticated]
    pagination_class = RosterPagination

    def get_queryset(self):
        queryset = Property.objects.select_related('shareholder')
        params = self.request.query_params

        shareholder_id = params.get('shareholder')
        if shareholder_id:
            queryset = queryset.filter(shareholder_id=shareholder_id)

        meeting_id = params.get('meeting')
        if meeting_id:
            queryset = queryset.filter(shareholder__meeting_id=meeting_id)

        search = params.get('search')
        if search:
            queryset = queryset.filter(
                Q(account__icontains=search) |
                Q(service_address__icontains=search) |
                Q(owner_name__icontains=search) |
                Q(customer_name__icontains=search)
            )

        return queryset

    def get_permissions(self):
        if self.action in ['destroy', 'bulk_uncheckin']:
            return [IsAuthenticated(), IsMeetingAdmin()]
        return [IsAuthenticated()]

    def get_serializer_class(self):
        if self.action == 'create':
            return PropertyCreateSerializer
        if self.action in ['update', 'partial_update']:
            return PropertyDetailsSerializer
        return PropertySerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        details = dict(serializer.validated_data)
        try:
            prop = create_property(
                shareholder_id=details.pop('shareholder_id'),
                account=details.pop('account'),
                actor=request.user,
                **details
            )
        except MeetingsServiceError as e:
            return error_response(e)

        return Response(PropertySerializer(prop).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        # Unknown keys are rejected so ownership can't be changed by accident
        if 'shareholder_id' in request.data or 'shareholder' in request.data:
            return Response(
                {'error': "Use a transfer to change a property's owner"},
                status=status.HTTP_400_BAD_REQUEST
            )

        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            prop = update_property_details(
                property_id=self.kwargs['pk'],
                actor=request.user,
                **serializer.validated_data
            )
        except MeetingsServiceError as e:
            return error_response(e)

        return Response(PropertySerializer(prop).data)

    def destroy(self, request, *args, **kwargs):
        try:
            delete_property(property_id=self.kwargs['pk'], actor=request.user)
        except MeetingsServiceError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=TransferSerializer, responses={200: TransferResultSerializer})
    @action(detail=True, methods=['post'])
    def transfer(self, request, pk=None):
        """Transfer the property to another existing shareholder."""
        serializer = TransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        overrides = {
            key: value or None
            for key, value in data.items()
            if key not in ('target_shareholder_id', 'keep_existing_service')
        }

        try:
            result = transfer_property(
                property_id=pk,
                target_shareholder_id=data['target_shareholder_id'],
                actor=request.user,
                keep_existing_service=data['keep_existing_service'],
                **overrides
            )
        except MeetingsServiceError as e:
            return error_response(e)

        return Response(TransferResultSerializer(result).data)

    @extend_schema(responses={200: PropertyTransferSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def transfers(self, request, pk=None):
        """Transfer history, newest first."""
        try:
            history = list_property_transfers(property_id=pk)
        except MeetingsServiceError as e:
            return error_response(e)
        return Response(PropertyTransferSerializer(history, many=True).data)

    @extend_schema(request=BulkUncheckInSerializer)
    @action(
        detail=False,
        methods=['post'],
        url_path='bulk-uncheckin',
        url_name='bulk-uncheckin'
    )
    def bulk_uncheckin(self, request):
        """Clear every check-in, optionally for one meeting (admin only)."""
        serializer = BulkUncheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            updated = bulk_uncheck_in(
                actor=request.user,
                meeting_id=serializer.validated_data.get('meeting_id')
            )
        except MeetingsServiceError as e:
            return error_response(e)

        return Response({
            'message': f'Successfully unchecked {updated} properties',
            'updated_count': updated,
        })


# =============================================================================
# Check-in
# =============================================================================

@extend_schema(request=CheckInSerializer, responses={200: CheckInResultSerializer})
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def check_in(request):
    """Check a shareholder in and return the meeting's counters."""
    serializer = CheckInSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        meeting = check_in_shareholder(
            shareholder_id=serializer.validated_data['shareholder_id'],
            signature_image=serializer.validated_data.get('signature_image') or None
        )
    except MeetingsServiceError as e:
        return error_response(e)

    return Response({
        'message': 'Check-in successful',
        'meeting': MeetingSerializer(meeting).data,
    })


@extend_schema(request=ManualCheckInSerializer, responses={200: CheckInResultSerializer})
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def manual_checkin(request):
    """Desk check-in with duplicate-ballot guard, or admin undo."""
    serializer = ManualCheckInSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    action_name = serializer.validated_data['action']
    try:
        meeting = manual_check_in(
            shareholder_id=serializer.validated_data['shareholder_id'],
            action=action_name,
            actor=request.user
        )
    except MeetingsServiceError as e:
        return error_response(e)

    message = 'Check-in successful' if action_name == 'checkin' else 'Check-in undone'
    return Response({
        'message': message,
        'meeting': MeetingSerializer(meeting).data,
    })


# =============================================================================
# Undo requests
# =============================================================================

class UndoRequestViewSet(viewsets.GenericViewSet):
    """
    ViewSet for undo requests.

    list: Requests in filing order, optional ?status= (admin only)
    create: File a request (any signed-in clerk)
    update: Approve or reject with {"action": ...} (admin only)
    """

    queryset = UndoRequest.objects.all()
    serializer_class = UndoRequestSerializer
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action in ['list', 'update']:
            return [IsAuthenticated(), IsMeetingAdmin()]
        return [IsAuthenticated()]

    @extend_schema(
        parameters=[OpenApiParameter('status', str, description='pending, approved or rejected')],
        responses={200: UndoRequestSerializer(many=True)}
    )
    def list(self, request):
        try:
            requests = list_undo_requests(
                actor=request.user,
                status=request.query_params.get('status')
            )
        except MeetingsServiceError as e:
            return error_response(e)
        return Response(UndoRequestSerializer(requests, many=True).data)

    @extend_schema(request=UndoRequestCreateSerializer, responses={201: UndoRequestSerializer})
    def create(self, request):
        serializer = UndoRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            undo_request = request_undo(actor=request.user, **serializer.validated_data)
        except MeetingsServiceError as e:
            return error_response(e)

        return Response(UndoRequestSerializer(undo_request).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=UndoResolveSerializer, responses={200: UndoRequestSerializer})
    def update(self, request, pk=None):
        serializer = UndoResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            undo_request = resolve_undo(
                request_id=pk,
                action=serializer.validated_data['action'],
                actor=request.user
            )
        except MeetingsServiceError as e:
            return error_response(e)

        return Response(UndoRequestSerializer(undo_request).data)
