[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtpinterceptor"
version = "0.1.0"
description = "Composable RTP/RTCP interceptors, packet models, FlexFEC encoding and congestion-control building blocks"
requires-python = ">=3.10"
dependencies = []
keywords = ["rtp", "rtcp", "webrtc", "congestion-control", "gcc", "flexfec", "twcc", "interceptor"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rtpinterceptor"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
