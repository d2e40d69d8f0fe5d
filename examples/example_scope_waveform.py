import sys

import vxilink.util
from vxilink import Instrument, LinkConfig

ADDRESS = sys.argv[1] if len(sys.argv) > 1 else "192.168.1.20"
NUM_POINTS = 1_000_000

vxilink.util.start_client_log(log_to_stdout=True, log_level="INFO")
# logs go to ~/.vxilink/client.log too

config = LinkConfig(
    address=ADDRESS,
    # backend="visa",
    read_timeout_ms=10_000,  # long traces take a while
    max_retries=5,
)

with Instrument(config) as scope:
    print(scope.query("*IDN?"))
    scope.write(":WAV:SOUR CHAN1")
    scope.write(":WAV:FORM BYTE")
    scope.write(f":WAV:POIN {NUM_POINTS}")
    x_incr = scope.query_double(":WAV:XINC?")
    trace = scope.query_block(":WAV:DATA?", NUM_POINTS)

print(f"Got {len(trace)} points, {x_incr * len(trace):.3e} s of signal")

vxilink.util.shutdown_client_log()
