import logging

import pytest

from terrain_generator import NoiseConfig, NoiseField


@pytest.fixture
def logger():
    return logging.getLogger("terrain-tests")


@pytest.fixture
def field():
    return NoiseField.build(NoiseConfig(octaves=4, persistence=0.5, lacunarity=2.0, scale=20.0, seed=1337))


@pytest.fixture
def scenario_field():
    return NoiseField.build(NoiseConfig(octaves=1, persistence=0.5, lacunarity=2.0, scale=20.0, seed=42))
