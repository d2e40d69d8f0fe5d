# -*- coding: utf-8 -*-
import setuptools
import pathlib
import site
import sys

# odd bug with develop (editable) installs, see: https://github.com/pypa/pip/issues/7953
site.ENABLE_USER_SITE = "--user" in sys.argv[1:]

required = [
    "loguru",
    "click>=8.0.0",
    "mashumaro",
    "pyvisa",
    "pyvisa_py",
    "python-vxi11",
]

test_required = [
    "pytest",
    "doit",
]

here = pathlib.Path(__file__).parent.resolve()

long_description = (here / "README.md").read_text(encoding="utf-8")

# Read version
version = {}
with open(here / "src/vxilink/_version.py", "r") as f:
    exec(f.read(), version)

if __name__ == "__main__":
    setuptools.setup(
        name="vxilink",
        version=version["__version__"],
        author="David Broadway and Sam Scholten",
        author_email="broadwayphysics@gmail.com",
        description="VXI-11 instrument control client: links, chunked I/O, data blocks.",
        long_description=long_description,
        long_description_content_type="text/markdown",
        keywords=[
            "VXI-11",
            "LXI",
            "SCPI",
            "instrument control",
            "oscilloscope",
        ],
        classifiers=[
            "License :: OSI Approved :: MIT License",
            "Development Status :: 3 - Alpha",
        ],
        license="MIT",
        package_dir={"": "src"},
        packages=setuptools.find_packages(
            where="src",
            exclude=["*.test", "*.test.*", "test.*", "test", "test_*"],
        ),
        entry_points={
            "console_scripts": [
                "vxilink=vxilink.cli:cli",
            ],
        },
        install_requires=required,
        extras_require={"test": test_required},
        python_requires=">= 3.10",
        package_data={"": ["*.md"]},
    )
