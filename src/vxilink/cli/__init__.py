"""
Command-line interface for vxilink.

Built with Click. Every instrument command takes either `--address` or a
named `--instrument` from the configuration file, plus `--backend`,
`--device` and `--timeout` overrides.

Examples
--------
```bash
$ vxilink query "*IDN?" -a 192.168.1.20
$ vxilink value ":MEAS:FREQ?" -i scope --double
$ vxilink fetch-block ":WAV:DATA?" -i scope -o trace.bin
```

CLI Tree
--------

```
$ vxilink --tree
cli
└── configs
└── fetch-block
└── query
└── value
└── write
```
"""

from .base import cli, tree_option

__all__ = ["cli", "tree_option"]
