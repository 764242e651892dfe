#!/usr/bin/env python3
"""
Aerophone Tuner - CLI Interface

Predict the resonances of a simple tube and inspect its impedance spectrum.
"""

import argparse
import logging

import numpy as np

from .geometry import Mouthpiece, Reed, create_tube
from .instrument_calculator import InstrumentCalculator
from .logging_config import setup_logging
from .physics import PhysicalParameters
from .playing_range import PlayingRange
from .spectrum import calculate_impedance_spectrum
from .tuning import Fingering, frequency_to_note


def build_calculator(args) -> InstrumentCalculator:
    """Calculator for the tube described on the command line."""
    mouthpiece = Mouthpiece(position=0.0)
    if args.mouthpiece == 'reed':
        mouthpiece = Mouthpiece(position=0.0, reed=Reed('single'))
    tube = create_tube(args.length, args.bore, args.bore_end,
                       mouthpiece=mouthpiece, flange_diameter_mm=args.flange)
    params = PhysicalParameters(args.temperature, 'C')
    return InstrumentCalculator(tube, params)


def find_resonances(calculator: InstrumentCalculator, freq_start: float,
                    freq_end: float, n_freq: int = 2000) -> list[float]:
    """Reactance zeros (crossing upward) between ``freq_start`` and ``freq_end``."""
    fingering = Fingering(open_end=True)
    freqs = np.linspace(freq_start, freq_end, n_freq)
    reactance = calculator.calc_z_array(freqs, fingering).imag

    playing_range = PlayingRange(calculator, fingering)
    resonances = []
    for i in range(len(freqs) - 1):
        if reactance[i] < 0 <= reactance[i+1]:
            result = playing_range.find_x_zero(freqs[i])
            if result.success and not any(abs(result.frequency - f) < 1e-3 for f in resonances):
                resonances.append(result.frequency)
    return sorted(resonances)


def resonances_command(args):
    """Report the resonance frequencies of a tube."""
    calculator = build_calculator(args)
    resonances = find_resonances(calculator, args.fmin, args.fmax)

    print("\n" + "=" * 60)
    print("TUBE RESONANCES")
    print("=" * 60)
    print(calculator.params.summary())
    end = args.bore_end if args.bore_end is not None else args.bore
    print(f"\nBore: {args.length:.1f} mm, {args.bore:.2f} -> {end:.2f} mm, "
          f"{args.mouthpiece} mouthpiece")
    print("")

    if not resonances:
        print(f"No resonances between {args.fmin:g} and {args.fmax:g} Hz")
        print("=" * 60)
        return

    print(f"  {'Mode':<6} {'Freq (Hz)':>10} {'Note':>8} {'Cents':>8} {'Ratio':>8}")
    print(f"  {'-'*6} {'-'*10} {'-'*8} {'-'*8} {'-'*8}")
    for i, freq in enumerate(resonances):
        note, cents_off = frequency_to_note(freq)
        print(f"  {i+1:<6} {freq:>10.2f} {note:>8} {cents_off:>+8.1f} "
              f"{freq / resonances[0]:>8.2f}")
    print("=" * 60)


def spectrum_command(args):
    """Print impedance extrema and optionally plot the spectrum."""
    calculator = build_calculator(args)
    fingering = Fingering(open_end=True)
    spectrum = calculate_impedance_spectrum(calculator, fingering, args.fmin, args.fmax,
                                            args.points)

    print("\nIMPEDANCE SPECTRUM")
    print("=" * 60)
    print(f"  Minima of |Im Z| (Hz): {', '.join(f'{f:.1f}' for f in spectrum.minima)}")
    print(f"  Maxima of |Im Z| (Hz): {', '.join(f'{f:.1f}' for f in spectrum.maxima)}")

    if args.plot:
        try:
            plot_spectrum(spectrum)
        except ImportError:
            print("(matplotlib not available for plotting)")


def plot_spectrum(spectrum):
    """Plot impedance magnitude and reactance against frequency."""
    import matplotlib.pyplot as plt

    fig, axes = plt.subplots(2, 1, figsize=(12, 8), sharex=True)

    ax1 = axes[0]
    ax1.semilogy(spectrum.frequencies, spectrum.magnitude)
    ax1.set_ylabel('|Z| (Pa·s/m³)')
    ax1.set_title('Input Impedance')
    ax1.grid(True, alpha=0.3)

    ax2 = axes[1]
    ax2.plot(spectrum.frequencies, spectrum.values.imag)
    ax2.axhline(0, color='black', linewidth=0.5)
    for freq in spectrum.minima:
        ax2.axvline(freq, color='red', linestyle='--', alpha=0.5)
    ax2.set_xlabel('Frequency (Hz)')
    ax2.set_ylabel('Im Z')
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig('impedance_spectrum.png', dpi=150)
    print("\nPlot saved to impedance_spectrum.png")
    plt.show()


def add_tube_arguments(parser):
    parser.add_argument('--length', type=float, required=True, help='Bore length (mm)')
    parser.add_argument('--bore', type=float, required=True, help='Bore diameter at the top (mm)')
    parser.add_argument('--bore-end', type=float, help='Bore diameter at the bottom (mm)')
    parser.add_argument('--mouthpiece', choices=['open', 'reed'], default='open',
                        help='Flow-node (open) or pressure-node (reed) excitation')
    parser.add_argument('--flange', type=float, default=0.0,
                        help='Termination flange diameter (mm)')
    parser.add_argument('--temperature', type=float, default=20.0, help='Air temperature (°C)')
    parser.add_argument('--fmin', type=float, default=50.0, help='Lowest frequency (Hz)')
    parser.add_argument('--fmax', type=float, default=2000.0, help='Highest frequency (Hz)')


def main():
    parser = argparse.ArgumentParser(
        description='Aerophone Tuner - transfer-matrix woodwind acoustics',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Resonances of a 300 mm, 20 mm bore open pipe
  python -m aerophone_tuner resonances --length 300 --bore 20

  # Clarinet-like cylinder driven by a reed
  python -m aerophone_tuner resonances --length 600 --bore 15 --mouthpiece reed

  # Impedance spectrum of a cone, with a plot
  python -m aerophone_tuner spectrum --length 400 --bore 10 --bore-end 40 --plot
        """
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    parser.add_argument('--log-file', type=str, help='Also write the log to this file')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    res_parser = subparsers.add_parser('resonances', help='Find resonance frequencies')
    add_tube_arguments(res_parser)

    spec_parser = subparsers.add_parser('spectrum', help='Impedance spectrum extrema')
    add_tube_arguments(spec_parser)
    spec_parser.add_argument('--points', type=int, default=1000, help='Frequency grid size')
    spec_parser.add_argument('--plot', action='store_true', help='Generate plot')

    args = parser.parse_args()

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)

    if args.command in ('resonances', 'spectrum') and args.fmin >= args.fmax:
        parser.error("--fmin must be below --fmax")

    if args.command == 'resonances':
        resonances_command(args)
    elif args.command == 'spectrum':
        spectrum_command(args)
    else:
        parser.print_help()


if __name__ == '__main__':
    main()
