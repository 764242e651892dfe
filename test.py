"""
Example: Predict the tuning of a six-hole whistle.

This file walks through the main controls of the model. Adjust the values
below to suit your instrument and playing conditions.
"""

import logging

from aerophone_tuner import (
    BorePoint, Fipple, Hole, Instrument, Mouthpiece, Termination,
    Fingering, Note, Tuning, PhysicalParameters, PlayingRange, SolverConfig,
    create_calculator, calculate_impedance_spectrum,
    SimpleInstrumentTuner, compare_tunings, tuning_stats, setup_logging,
    HolePositionObjectiveFunction, create_evaluator, optimize_objective,
)

# =========================================================================
# Logging (optional)
# =========================================================================
# DEBUG shows the component chain and every bracket search.

setup_logging(logging.INFO)


# =========================================================================
# Air
# =========================================================================
# Temperature in 'C' or 'F', pressure in kPa, humidity in %.

params = PhysicalParameters(
    temperature=20.0,
    temp_unit='C',
    pressure=101.325,
    humidity=45.0,
)
print(params.summary())


# =========================================================================
# Instrument geometry (mm)
# =========================================================================
# Bore points are (position, diameter) from the top of the bore.
# The fipple window sits at the mouthpiece position; bore above it is
# headspace. Holes are listed top to bottom.

whistle = Instrument(
    name="D whistle",
    length_type='MM',
    bore_points=[
        BorePoint(0.0, 16.0),
        BorePoint(300.0, 16.0),
    ],
    mouthpiece=Mouthpiece(
        position=0.0,
        fipple=Fipple(
            window_length=10.0,     # Window length along the bore (mm)
            window_width=8.0,       # Window width across the bore (mm)
            window_height=3.0,      # Blade height above the windway floor (mm)
            windway_height=1.0,     # Used for the loop-gain model
        ),
    ),
    holes=[
        Hole(position=200.0, diameter=8.0, height=4.0, name='1'),
        Hole(position=215.0, diameter=8.0, height=4.0, name='2'),
        Hole(position=230.0, diameter=8.0, height=4.0, name='3'),
        Hole(position=250.0, diameter=8.0, height=4.0, name='4'),
        Hole(position=265.0, diameter=8.0, height=4.0, name='5'),
        Hole(position=280.0, diameter=8.0, height=4.0, name='6'),
    ],
    termination=Termination(flange_diameter=16.0),
)


# =========================================================================
# Calculator
# =========================================================================
# 'auto' picks the model from the mouthpiece; a fipple instrument whose
# name contains "whistle" gets the whistle model. Force one with
# 'whistle', 'naf' or 'flute'.

calculator = create_calculator(whistle, params, 'auto')


# =========================================================================
# Solver settings
# =========================================================================
# granularity:        bracket search step (fraction of frequency)
# preferred_ratio:    accept a bracket this close without looking further
# search_bound_ratio: give up beyond this ratio of the start frequency

config = SolverConfig(granularity=0.012, preferred_ratio=1.12, search_bound_ratio=2.0)


# =========================================================================
# Tuning
# =========================================================================
# "X" closed, "O" open, trailing "_" open end.

tuning = Tuning(name="D major", number_of_holes=6, fingerings=[
    Fingering.from_string("XXX XXX_", Note.from_name('D5')),
    Fingering.from_string("XXX XXO_", Note.from_name('E5')),
    Fingering.from_string("XXX XOO_", Note.from_name('F#5')),
    Fingering.from_string("XXX OOO_", Note.from_name('G5')),
    Fingering.from_string("XXO OOO_", Note.from_name('A5')),
    Fingering.from_string("XOO OOO_", Note.from_name('B5')),
])


# =========================================================================
# Optimisation
# =========================================================================
# Evaluator: 'cents', 'frequency', 'reactance', 'fmin', 'fmax', 'fminmax',
#            'bellnote' or 'reflection'
# Method:    'powell', 'nelder-mead', 'brent' (one variable) or
#            'differential_evolution' (global search, then Powell)
# Set OPTIMIZE = False to only predict the tuning.

OPTIMIZE = True
EVALUATOR = 'cents'
METHOD = 'powell'
MAX_EVALUATIONS = 1000


if __name__ == '__main__':
    # Lowest note: the reactance zero near the target
    low = tuning.fingerings[0]
    result = PlayingRange(calculator, low, config).find_x_zero(low.note.frequency)
    if result.success:
        print(f"\n{low}  ->  {result.frequency:.2f} Hz")
    else:
        print(f"\n{low}  ->  {result.message}")

    # Impedance extrema for the same fingering
    spectrum = calculate_impedance_spectrum(calculator, low, 200, 3000, 1000)
    print(f"Impedance minima: {', '.join(f'{f:.0f}' for f in spectrum.minima)} Hz")

    # Predicted tuning against the targets
    tuner = SimpleInstrumentTuner(calculator, tuning, config)
    results = compare_tunings(tuning, tuner.predicted_tuning())

    print(f"\n  {'Note':<6} {'Target':>10} {'Predicted':>10} {'Cents':>8}")
    print(f"  {'-'*6} {'-'*10} {'-'*10} {'-'*8}")
    for r in results:
        predicted = f"{r.predicted_frequency:>10.2f}" if r.predicted_frequency else f"{'—':>10}"
        deviation = f"{r.deviation_cents:>+8.1f}" if r.deviation_cents is not None else f"{'—':>8}"
        print(f"  {r.name:<6} {r.target_frequency:>10.2f} {predicted} {deviation}")

    print("\n" + tuning_stats(results).summary())

    if OPTIMIZE:
        # Bore length and hole spacings, in metres
        objective = HolePositionObjectiveFunction(
            calculator, tuning, create_evaluator(EVALUATOR, config=config))
        optimized = optimize_objective(objective, method=METHOD,
                                       max_evaluations=MAX_EVALUATIONS, verbose=True)
        print("\n" + optimized.summary())
