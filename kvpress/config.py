"""Default parameters for kvpress runs."""

# Target store.
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6379

# Number of concurrent benchmark workers.
DEFAULT_WORKERS = 20

# Requests bundled into one round trip (0 disables pipelining).
DEFAULT_PIPELINE = 0

# String value size in KB.
DEFAULT_DATA_SIZE_KB = 2

# Socket timeouts (seconds) for read and write operations.
READ_TIMEOUT_S = 0.5
WRITE_TIMEOUT_S = 0.2

# Minimum connection-pool size shared by all workers.
POOL_SIZE = 100

# Upper bound for random values, scores and list/set elements.
MAX_VALUE = 1_000_000

# Fan-out range for container operations (elements per call).
MIN_FANOUT = 1
MAX_FANOUT = 10

# Fake-data seeding: writes per pipelined batch and concurrent fillers.
FILL_BATCH_SIZE = 100
FILL_WORKERS = 4

# Metrics sink (InfluxDB UDP listener).
DEFAULT_INFLUXDB_HOST = "127.0.0.1"
DEFAULT_INFLUXDB_PORT = 8089
DEFAULT_INFLUXDB_DATABASE = "udp"
MEASUREMENT = "kvpress"

# Samples per flushed metrics batch.
METRICS_BATCH_SIZE = 100

# Concurrent in-flight flushes.
FLUSH_WORKERS = 8

# Seconds without a new flush completion before the run is declared stuck.
DEFAULT_FLUSH_TIMEOUT_S = 60.0

# Seconds allowed for establishing a store connection.
CONNECT_TIMEOUT_S = 5.0
