#!/usr/bin/env python3
"""
Setup configuration for Playlist-Migrator
A resumable tool for migrating Spotify playlists to YouTube
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "spotipy>=2.22.1",
    "requests>=2.31.0",
    "click>=8.1.7",
    "rich-click>=1.7.0",
    "rich>=13.7.0",
    "rapidfuzz>=3.5.0",
    "pyyaml>=6.0.1",
    "tqdm>=4.66.1",
]

setup(
    name="playlist-migrator",
    version="0.1.0",
    author="Playlist-Migrator Team",
    description="Migrate Spotify playlists to YouTube with resumable per-track progress",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["playlist_migrator", "playlist_migrator.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "playlist-migrate=playlist_migrator.cli:main",
        ],
    },
    keywords="spotify youtube music playlist migration cli",
)
