from setuptools import setup

with open("README.md") as f:
    readme = f.read()

_ = setup(
    name="efikeygen",
    version="1.0.0",
    license="GPL-2.0-only",
    long_description=readme,
    long_description_content_type="text/markdown",
    python_requires=">=3.9",
    install_requires=[
        "argcomplete~=3.5",
        "asn1crypto~=1.5.1",
        "cryptography~=42.0.8",
        "pyasn1~=0.6.1",
    ],
    extras_require={
        "test": ["pytest"],
    },
    packages=[
        "efikeygen",
        "efikeygen.commands",
        "efikeygen.commands.parsers",
        "efikeygen.lib",
    ],
    entry_points={
        "console_scripts": ["efikeygen=efikeygen.entry:main"],
    },
    description="Generate X.509 certificates for UEFI secure boot key enrollment",
)
