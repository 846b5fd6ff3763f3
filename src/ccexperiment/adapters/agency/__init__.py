"""Agency transport adapters."""

from ccexperiment.adapters.agency.http import (
    RequestsAgencyClient,
    normalize_agency_url,
)


__all__ = ["RequestsAgencyClient", "normalize_agency_url"]
