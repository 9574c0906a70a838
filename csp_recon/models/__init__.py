# Models package — re-export the network models.
# Prefer importing from the specific submodule (e.g. csp_recon.models.network).

from csp_recon.models.network import (
    FetchResult as FetchResult,
    NavigationResult as NavigationResult,
    NetworkEvent as NetworkEvent,
    ReconResult as ReconResult,
    ReconState as ReconState,
    RequestEvent as RequestEvent,
    ResponseEvent as ResponseEvent,
    parse_event as parse_event,
)
