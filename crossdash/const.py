DOMAIN = "crossdash"
VERSION = "0.3.0"

# Resolution backend
DEFAULT_RESOLVER_URL = "http://127.0.0.1:5000"
RESOLVE_ENDPOINT = "/find-address"

# Routing backend (OSRM compatible)
DEFAULT_ROUTING_URL = "https://router.project-osrm.org"
TRAVEL_MODE = "driving"

# IP based location lookup used when no fixed coordinate is configured
DEFAULT_LOCATION_URL = "https://ipapi.co/json/"

REQUEST_TIMEOUT = 10          # seconds, single attempt per call
COUNTDOWN_INTERVAL = 60       # one ETA step per real minute
MAP_ZOOM = 14                 # zoom used when centring on the user marker

# User-visible messages for terminal session failures
MESSAGE_PERMISSION_DENIED = "User denied the request for Geolocation."
MESSAGE_POSITION_UNAVAILABLE = "Location information is unavailable."
MESSAGE_TIMEOUT = "The request to get user location timed out."
MESSAGE_UNKNOWN = "An unknown error occurred."
MESSAGE_UNSUPPORTED = "Geolocation is not supported on this host."
MESSAGE_RESOLUTION_FAILED = "Failed to fetch address"
