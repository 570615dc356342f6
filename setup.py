from setuptools import find_packages, setup

setup(
    name="webdav-fs",
    version="3.0.0",
    description="Callback-style filesystem adapter for WebDAV servers",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "webdav4>=0.9.8",
        "httpx>=0.23.0",
        "google-auth[requests]>=2.20.0",
    ],
    entry_points={
        "console_scripts": [
            "webdav-fs=webdav_fs.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "dev": [
            "pytest",
            "build",
            "twine",
        ],
    },
)
