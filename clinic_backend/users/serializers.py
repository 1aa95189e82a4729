# users/serializers.py

from rest_framework import serializers
from django.contrib.auth import get_user_model

from permissions.roles import capabilities_for

User = get_user_model()


# ---------------- USER OUTPUT ----------------
class UserSerializer(serializers.ModelSerializer):
    """
    Safe staff representation for frontend consumption.
    capabilities lets the UI hide actions the role cannot perform
    (e.g. "Mark paid" for technicians).
    """
    display_name = serializers.CharField(read_only=True)
    capabilities = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "display_name",
            "role",
            "capabilities",
        ]

    def get_capabilities(self, obj) -> list[str]:
        return sorted(capabilities_for(obj))
