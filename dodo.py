# -*- coding: utf-8 -*-
# pydoit task file
# see https://pydoit.org/
# run from this dir with `doit`, or `doit list`, `doit help` etc. (pip install doit 1st)

from doit.action import CmdAction

SPEED_FILTERS = {
    "slow": ["-m", "slow"],
    "not slow": ["-m", '"not slow"'],
    "fast": ["-m", '"not slow"'],
    "all": [],
    "": [],
}

TEST_HELP = """echo '
{title}
{underline}

Filter Options:
  -k, --keyword TEXT    Only run test matching the keyword expression
                        Example: -k "reader and not slow"
  -s, --speed TEXT      Filter test by speed:
                        - "slow": Run only slow test
                        - "not slow" or "fast": Skip slow test
                        - "all": Run all test regardless of speed
  -r, --retry           Only run previously failed test

Output Options:
  -p, --print-logs      Print test logs to console instead of capturing
  -f, --full-trace      Show full traceback on errors
  -t, --show-time       Display duration of all test

Examples:
  doit {task}                     # Run all test
  doit {task} -k block            # Run test containing "block"
  doit {task} -s fast -p          # Run fast test with logs
  doit {task} --retry --show-time # Rerun failed test with timing
  '"""


def _build_pytest_command(
    test_dir,
    keyword="",
    speed="",
    retry=False,
    print_logs=False,
    full_trace=False,
    show_time=False,
):
    """Helper function to build pytest commands for test tasks."""
    cmd = ["pytest"]

    if print_logs:
        cmd.append("--capture=no")
    if full_trace:
        cmd.append("--full-trace")
    if show_time:
        cmd.append("--durations=0")

    cmd.extend(["--color=yes", "-vv", "-x"])

    if retry:
        cmd.append("--lf")
    if keyword:
        cmd.extend(["-k", keyword])
    if speed not in SPEED_FILTERS:
        raise ValueError(
            f"Invalid speed filter: {speed}. Use 'slow', 'not slow', 'fast', or 'all'"
        )
    cmd.extend(SPEED_FILTERS[speed])

    cmd.append(test_dir)

    return " ".join(cmd)


def _test_task(test_dir, task_name, title):
    def router(keyword, speed, retry, print_logs, full_trace, show_time, help=False):
        if help:
            return TEST_HELP.format(
                title=title, underline="=" * len(title), task=task_name
            )
        try:
            return _build_pytest_command(
                test_dir,
                keyword=keyword,
                speed=speed,
                retry=retry,
                print_logs=print_logs,
                full_trace=full_trace,
                show_time=show_time,
            )
        except ValueError as e:
            return f"echo 'Error: {str(e)}' && exit 1"

    flags = [
        ("retry", "r"),
        ("print_logs", "p"),
        ("full_trace", "f"),
        ("show_time", "t"),
    ]
    return {
        "actions": [CmdAction(router)],
        "params": [
            {"name": "help", "long": "help", "default": False, "type": bool},
            {"name": "keyword", "short": "k", "default": ""},
            {"name": "speed", "short": "s", "default": ""},
        ]
        + [
            {"name": name, "short": short, "default": False, "type": bool}
            for name, short in flags
        ],
        "verbosity": 2,
    }


def task_install():
    """Install vxilink in editable mode, with test extras"""
    return {
        "actions": ["pip install -e .[test]"],
        "verbosity": 2,
    }


def task_test_logic():
    """Run the logic test suite (test in test/logic/)."""
    return _test_task("test/logic/", "test_logic", "Test Logic Runner Help")


def task_test_hardware():
    """Run the hardware test suite (needs VXILINK_TEST_ADDRESS set)."""
    return _test_task("test/hardware/", "test_hardware", "Test Hardware Runner Help")


def task_list_instruments():
    """List instruments in the vxilink configuration file."""
    return {
        "actions": ["vxilink configs"],
        "verbosity": 2,
    }
