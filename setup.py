from setuptools import setup, find_packages

setup(
    name="playlist-player",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "typer",
        "rich",
        "toolz",
        "pymonad>=2.4.0",
        "yt-dlp",
        "google-api-python-client",
        "google-auth",
        "google-auth-oauthlib",
        "PyYAML",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-mock",
            "ruff",
            "setuptools",
            "wheel",
            "twine",
        ]
    },
    entry_points={
        "console_scripts": [
            "playlist-player = playlist_player.cli:app",
        ],
    },
    description="Browse YouTube playlists and download their videos for local playback.",
    long_description=open("README.adoc").read(),
    long_description_content_type="text/plain",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Topic :: Multimedia :: Video",
        "Topic :: Internet :: WWW/HTTP",
    ],
    python_requires=">=3.9",
)
