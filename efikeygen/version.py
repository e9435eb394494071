version = "?"

try:
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as get_version

    version = get_version("efikeygen")
except PackageNotFoundError:
    print(
        "Cannot determine efikeygen version. "
        'If running from source you should at least run "pip install -e ."'
    )

BANNER = "efikeygen v{} - UEFI secure boot certificate generator\n".format(version)
