# apps/campaigns/views.py

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import Campaign
from .serializers import (
    CampaignListSerializer,
    CampaignLogSerializer,
    CampaignSerializer,
    DomainBulkCreateSerializer,
    DomainSerializer,
)
from .selectors import get_campaign_stats, get_domains_for_campaign, get_recent_logs
from .services import add_domains, create_campaign, pause_campaign, start_campaign


MAX_LOG_LIMIT = 200


class CampaignViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    API endpoints for campaigns.

    list:       GET    /api/v1/campaigns/
    create:     POST   /api/v1/campaigns/
    retrieve:   GET    /api/v1/campaigns/{id}/
    start:      POST   /api/v1/campaigns/{id}/start/
    pause:      POST   /api/v1/campaigns/{id}/pause/
    stats:      GET    /api/v1/campaigns/{id}/stats/
    logs:       GET    /api/v1/campaigns/{id}/logs/
    domains:    GET    /api/v1/campaigns/{id}/domains/
                POST   /api/v1/campaigns/{id}/domains/  {"urls": [...]}
    """

    queryset = Campaign.objects.all().order_by("-created_at")

    def get_serializer_class(self):
        if self.action == "list":
            return CampaignListSerializer
        return CampaignSerializer

    def perform_create(self, serializer):
        data = dict(serializer.validated_data)
        serializer.instance = create_campaign(data.pop("name"), **data)

    @action(detail=True, methods=["post"])
    def start(self, request, pk=None):
        campaign = self.get_object()
        if not campaign.domains.exists():
            return Response({"error": "Campaign has no domains"}, status=status.HTTP_400_BAD_REQUEST)
        start_campaign(campaign)
        return Response(CampaignSerializer(campaign).data)

    @action(detail=True, methods=["post"])
    def pause(self, request, pk=None):
        campaign = pause_campaign(self.get_object())
        return Response(CampaignSerializer(campaign).data)

    @action(detail=True, methods=["get"])
    def stats(self, request, pk=None):
        return Response(get_campaign_stats(self.get_object()))

    @action(detail=True, methods=["get"])
    def logs(self, request, pk=None):
        try:
            limit = int(request.query_params.get("limit", MAX_LOG_LIMIT))
        except (TypeError, ValueError):
            limit = MAX_LOG_LIMIT
        limit = max(1, min(limit, MAX_LOG_LIMIT))
        logs = get_recent_logs(self.get_object(), limit=limit)
        return Response(CampaignLogSerializer(logs, many=True).data)

    @action(detail=True, methods=["get", "post"])
    def domains(self, request, pk=None):
        campaign = self.get_object()

        if request.method == "GET":
            domains = get_domains_for_campaign(campaign, status=request.query_params.get("status"))
            page = self.paginate_queryset(domains)
            if page is not None:
                return self.get_paginated_response(DomainSerializer(page, many=True).data)
            return Response(DomainSerializer(domains, many=True).data)

        serializer = DomainBulkCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = add_domains(campaign, serializer.validated_data["urls"])
        return Response(result, status=status.HTTP_201_CREATED)
