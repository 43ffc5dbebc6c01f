# type: ignore
"""simple_dns_exporter setup.py for setuptools.

simple_dns_exporter is a small Prometheus exporter which probes a DNS server for the A record
of a name and reports the outcome, duration and answer count.
"""
import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="simple_dns_exporter",
    version="0.1.0.dev0",
    description="simple_dns_exporter is a Prometheus exporter reporting the outcome of single DNS A queries.",
    license="BSD License",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=["simple_dns_exporter"],
    entry_points={"console_scripts": ["simple_dns_exporter = simple_dns_exporter.entrypoint:main"]},
    classifiers=[
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=["dnspython", "prometheus_client", "PyYAML"],
    extras_require={"test": ["pytest", "pytest-mock", "requests"]},
    include_package_data=True,
)
