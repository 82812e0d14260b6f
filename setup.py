from setuptools import setup
from taglog import __version__

setup(
    name="taglog",
    long_description="taglog writes tagged log entries to the console and to one log file per UTC day, "
    "with per-tag suppression and retention of old log files.",
    version=__version__,
    packages=[
        "taglog",
    ],
    include_package_data=True,
    install_requires=[
        "click>=8.0.3,<9.0.0",
        "pyyaml>=6.0.0,<7.0.0",
        "pyserde>=0.12.0",
        "humanfriendly>=10.0.0,<11.0.0",
        "beartype>=0.17.0,<1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-mock>=3.10.0",
        ],
    },
    entry_points="""
        [console_scripts]
        taglog=taglog.cli:cli
    """,
)
