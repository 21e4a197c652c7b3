from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'meetings'

# Router for ViewSets
router = DefaultRouter()
router.register(r'meetings', views.MeetingViewSet, basename='meeting')
router.register(r'shareholders', views.ShareholderViewSet, basename='shareholder')
router.register(r'properties', views.PropertyViewSet, basename='property')
router.register(r'undo-requests', views.UndoRequestViewSet, basename='undo-request')

urlpatterns = [
    # Meeting ViewSet routes
    # GET    /api/meetings/                          - List meetings
    # POST   /api/meetings/                          - Create meeting (admin)
    # GET    /api/meetings/{id}/                     - Meeting with counters
    # DELETE /api/meetings/{id}/                     - Delete meeting (admin)
    # GET    /api/meetings/{id}/stats/               - Dashboard figures
    # POST   /api/meetings/{id}/import/              - Import roster rows (admin)
    # POST   /api/meetings/{id}/mailers-generated/   - Flag mailers (admin)
    # GET    /api/meetings/next/                     - Next upcoming meeting

    # Shareholder ViewSet routes
    # GET    /api/shareholders/                      - List with property counts
    # POST   /api/shareholders/                      - Add shareholder
    # GET    /api/shareholders/{sid}/                - Details with properties
    # PATCH  /api/shareholders/{sid}/                - Rename
    # POST   /api/shareholders/{sid}/designee/       - Set designee
    # DELETE /api/shareholders/{sid}/designee/       - Clear designee
    # GET    /api/shareholders/{sid}/comment/        - Read comment
    # POST   /api/shareholders/{sid}/comment/        - Replace comment

    # Property ViewSet routes
    # GET    /api/properties/                        - List properties
    # POST   /api/properties/                        - Create property
    # GET    /api/properties/{id}/                   - Get property
    # PATCH  /api/properties/{id}/                   - Edit details
    # DELETE /api/properties/{id}/                   - Delete (admin)
    # POST   /api/properties/{id}/transfer/          - Transfer ownership
    # GET    /api/properties/{id}/transfers/         - Transfer history
    # POST   /api/properties/bulk-uncheckin/         - Reset check-ins (admin)

    # Undo request ViewSet routes
    # GET    /api/undo-requests/                     - List (admin)
    # POST   /api/undo-requests/                     - File request
    # PUT    /api/undo-requests/{id}/                - Approve/reject (admin)

    # Check-in
    path('checkin/', views.check_in, name='checkin'),
    path('checkin/manual/', views.manual_checkin, name='manual-checkin'),

    # Include router URLs
    path('', include(router.urls)),
]
