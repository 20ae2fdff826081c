"""
Eligible driver selection.

All drivers currently online and verified are eligible. There is no
distance ranking or geofencing: every eligible driver sees every request.
"""

import logging
from typing import List

from drivers.models import DriverProfile

logger = logging.getLogger(__name__)


def eligible_drivers(exclude_user_ids=()) -> List[DriverProfile]:
    """
    Fetch the driver profiles that should be notified about a new ride.

    Args:
        exclude_user_ids: Driver user IDs to leave out (e.g. already offered)

    Returns:
        List of DriverProfile instances, oldest location update first
    """
    profiles = (
        DriverProfile.objects.select_related("user")
        .filter(status=DriverProfile.STATUS_ONLINE, is_verified=True)
        .exclude(user_id__in=list(exclude_user_ids))
        .order_by("last_location_update")
    )
    return list(profiles)
