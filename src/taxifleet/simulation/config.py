# Fleet parameters
TOTAL_TAXIS = 8  # Number of taxis registered at simulation start
MAP_SIZE = 20  # Road network is a MAP_SIZE x MAP_SIZE grid

# Taxi movement and collision avoidance
TAXI_SPEED = 6.0  # Distance units per simulated second
TAXI_STOPPING_DISTANCE = 1.0  # Radius within which a taxi counts as arrived
ARRIVAL_TOLERANCE = 0.2  # Slack added on top of the stopping distance
BRAKE_DISTANCE = 3.0  # How far ahead the sensor looks for other taxis
MAX_BRAKE_TIME = 2.0  # Seconds braked before forcing the navigator to resume
SENSOR_HALF_ANGLE_DEG = 30.0  # Half-width of the forward detection cone
DESTINATION_SEARCH_RADIUS = 5.0  # Max snap distance onto the road network

# Dispatcher
DISPATCH_RETRY_INTERVAL = 3.0  # Seconds between pending-queue retry passes

# Passenger protocol
PASSENGER_STARTUP_DELAY = 1.0  # Seconds before a new passenger asks for a ride
PASSENGER_RETRY_DELAY = 5.0  # Backoff after a rejected request
PASSENGER_MAX_WAIT_TIME = 30.0  # Seconds before a waiting passenger gives up

# Passenger generation
PASSENGER_GENERATION_RATE = 1.0 / 15.0  # Average new passengers per second
MAX_ACTIVE_PASSENGERS = 6  # Cap on passengers that have not finished yet
MIN_TRIP_DISTANCE = 8.0  # Minimum straight-line pickup to dropoff distance
N_DEMAND_HOTSPOTS = 4  # Number of demand hotspots
DEMAND_HOTSPOT_STDDEV = 2.0  # How spread out requests are around hotspots
