import vxilink.util
from vxilink import LinkConfig, SessionManager, obtain_double_value, send_and_receive

# Log to the console
vxilink.util.start_client_log(log_to_file=False, log_to_stdout=True, log_level="DEBUG")

# A scripted in-memory instrument, no hardware needed
replies = {
    b"*IDN?": b"ACME,DSO-1000,SN0042,1.2\n",
    b":MEAS:FREQ?": b"1.000E+03\n",
}
config = LinkConfig(address="sim", backend="mock")

with SessionManager(config=config, replies=replies) as manager:
    scope = manager.open("sim")
    # a second link to the same address shares the client
    other = manager.open("sim")
    print(send_and_receive(scope, "*IDN?", 256))
    print(obtain_double_value(other, ":MEAS:FREQ?"))

vxilink.util.shutdown_client_log()
