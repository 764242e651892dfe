import pytest

from aerophone_tuner import (
    BorePoint, Fipple, Hole, Instrument, Mouthpiece, Reed, Termination,
    PhysicalParameters, create_tube,
)

HOLE_POSITIONS_MM = [200.0, 220.0, 240.0, 260.0, 270.0, 280.0]


@pytest.fixture
def params():
    return PhysicalParameters(20.0, 'C')


def make_whistle(name="Test Whistle", windway_height=None):
    """16 mm x 300 mm fipple whistle with six 8 mm holes (mm units)."""
    return Instrument(
        name=name,
        length_type='MM',
        bore_points=[BorePoint(0.0, 16.0), BorePoint(300.0, 16.0)],
        mouthpiece=Mouthpiece(
            position=0.0,
            fipple=Fipple(window_length=8.0, window_width=10.0, window_height=3.0,
                          windway_height=windway_height),
        ),
        holes=[Hole(position=p, diameter=8.0, height=4.0) for p in HOLE_POSITIONS_MM],
        termination=Termination(flange_diameter=0.0),
    )


@pytest.fixture
def whistle():
    return make_whistle()


@pytest.fixture
def whistle_with_windway():
    """Same whistle with a windway height, so it has a loop-gain model."""
    return make_whistle(windway_height=1.0)


@pytest.fixture
def reed_cylinder():
    """0.3 m x 0.02 m cylinder driven by a reed, unflanged open end."""
    return create_tube(300.0, 20.0, name="Reed pipe",
                       mouthpiece=Mouthpiece(position=0.0, reed=Reed('single')))


@pytest.fixture
def open_cylinder():
    """0.3 m x 0.02 m cylinder seen from an ideal open (flow-node) top."""
    return create_tube(300.0, 20.0, name="Open pipe")
