"""Fixed values shared by the scenario builder and the engine configuration."""

# Scenario
WARMUP_OFFSET_S = 1.0
SINK_PORT = 50000
SSID = "network"
SUBNET = "192.168.1.0/24"
MAX_NODES = 1024

# Grid layout (row first)
GRID_MIN_X = 0.0
GRID_MIN_Y = 0.0
GRID_DELTA_X = 5.0
GRID_DELTA_Y = 10.0
GRID_WIDTH = 3

# Random direction mobility
MOBILITY_BOUNDS = (-500.0, 500.0, -500.0, 500.0)
MOBILITY_SPEED = 2.0
MOBILITY_PAUSE = 0.2

# Physical layer
PROPAGATION_FREQUENCY_HZ = 5e9
TX_POWER_DBM = 10.0
TX_GAIN_DB = 0.0
RX_GAIN_DB = 0.0
RX_NOISE_FIGURE_DB = 10.0
CCA_THRESHOLD_DBM = -79.0
ENERGY_DETECTION_THRESHOLD_DBM = -79.0 + 3
FRAGMENTATION_THRESHOLD = 999999
RTS_CTS_THRESHOLD = 999999
MAX_MPDU_BYTES = 2346

# Header sizes in bytes, for the largest payload that fits one MPDU
MAC_HEADER_BYTES = 24
FCS_BYTES = 4
LLC_SNAP_BYTES = 8
IPV4_HEADER_BYTES = 20
TCP_HEADER_BYTES = 32

# Stream indices reserved per simulation context
STREAMS_PER_CONTEXT = 100_000

# Sweeps
STATION_COUNTS = range(1, 51)
DATA_RATE_VALUES = tuple(f"{rate}Mbps" for rate in range(100, 900, 100))
PHY_RATE_VALUES = ("DsssRate11Mbps", "DsssRate5_5Mbps", "DsssRate2Mbps", "DsssRate1Mbps")
