"""
Project URLs: Django admin, the API routes in ``core.routers`` and the
OpenAPI schema with its Swagger UI and ReDoc renderings.
"""
from django.contrib import admin
from django.urls import include, path, re_path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

api_info = openapi.Info(
    title="Blood Warriors API",
    default_version="v1",
    description=(
        "Blood donation coordination for Thalassemia patients and donors: donation and SOS requests "
        "with nearby-donor notification, partner coupons and the CareBot companion.\n\n"
        "User routes take `Authorization: Bearer <access token>`; partner routes take `X-API-Key`."
    ),
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
    authentication_classes=(),
)

urlpatterns = [
    path("admin/", admin.site.urls),
    re_path(r"^swagger(?P<format>\.json|\.yaml)$", schema_view.without_ui(cache_timeout=0), name="schema-json"),
    path("swagger/", schema_view.with_ui("swagger", cache_timeout=0), name="schema-swagger-ui"),
    path("redoc/", schema_view.with_ui("redoc", cache_timeout=0), name="schema-redoc"),
    path("", include("core.routers")),
]
