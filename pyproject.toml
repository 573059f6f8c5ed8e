[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "linkshort"
version = "0.1.0"
description = "A URL shortening service with a REST API, click analytics and a command-line interface"
requires-python = ">=3.10"
keywords = ["url-shortener", "short-links", "redirect", "flask", "sqlite", "analytics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Natural Language :: French",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
]
dependencies = [
    "flask",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
linkshort = "linkshort.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["linkshort"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
