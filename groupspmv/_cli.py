# Copyright 2025 BrainX Ecosystem Limited. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""CLI entry point for groupspmv.

Usage:
    groupspmv validate MATRIX.mtx [--platform {cpu|gpu}] [--reference {jax|scipy}]
    groupspmv info MATRIX.mtx [--platform {cpu|gpu}]
    groupspmv benchmark MATRIX.mtx [--platform {cpu|gpu}] [--output FILE] [--persist]

Exit codes of ``validate``: 0 when the kernel matches the reference, 1 on a
mismatch, 2 when the matrix cannot be read, 3 when the accelerator or a
requested backend is unavailable or fails.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

__all__ = ['main']

EXIT_CORRECT = 0
EXIT_MISMATCH = 1
EXIT_READ_ERROR = 2
EXIT_ACCELERATOR_ERROR = 3

logger = logging.getLogger('groupspmv')


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f'invalid float value: {text!r}') from None
    # also rejects nan
    if not value > 0:
        raise argparse.ArgumentTypeError(f'must be positive, got {text}')
    return value


def _build_parser() -> argparse.ArgumentParser:
    from groupspmv._validate import DEFAULT_EPS, REFERENCES  # pylint: disable=import-outside-toplevel

    parser = argparse.ArgumentParser(
        prog='groupspmv',
        description='groupspmv: row-group CSR sparse matrix-vector multiplication with validation.',
    )
    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase log verbosity (-v for info, -vv for debug).',
    )
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    def add_common(p):
        p.add_argument('matrix', help='Path of a MatrixMarket (.mtx) file.')
        p.add_argument(
            '--platform',
            default='cpu',
            choices=['cpu', 'gpu'],
            help='Where the kernel runs.',
        )

    val = subparsers.add_parser('validate', help='Run the kernel on a random vector and check it.')
    add_common(val)
    val.add_argument('--backend', default=None, help='Kernel backend (numba on cpu, numba_cuda on gpu).')
    val.add_argument('--reference', default=None, choices=list(REFERENCES), help='Reference routine.')
    val.add_argument('--eps', type=_positive_float, default=DEFAULT_EPS, help='Absolute tolerance.')
    val.add_argument('--seed', type=int, default=None, help='Seed of the random input vector.')
    val.add_argument('--width', type=int, default=None, help='Force the lane-group width.')
    val.add_argument('--max-report', type=int, default=20, help='Mismatches listed at most.')

    info = subparsers.add_parser('info', help='Print the matrix profile and launch configuration.')
    add_common(info)

    bench = subparsers.add_parser('benchmark', help='Time every kernel backend and reference routine.')
    add_common(bench)
    bench.add_argument('--seed', type=int, default=None, help='Seed of the random input vector.')
    bench.add_argument('--n-warmup', type=int, default=3, help='Number of warmup runs.')
    bench.add_argument('--n-runs', type=int, default=20, help='Number of timed runs.')
    bench.add_argument('--output', type=str, default=None, help='Output file path for JSON results.')
    bench.add_argument(
        '--persist',
        action='store_true',
        default=False,
        help='Persist the fastest kernel backend to user config.',
    )
    return parser


def _configure_logging(verbose: int):
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format='%(asctime)s %(name)s %(levelname)s: %(message)s')
    logging.getLogger('numba.cuda.cudadrv.driver').setLevel(logging.WARNING)


def _load(args):
    from groupspmv._io import load_matrix_market  # pylint: disable=import-outside-toplevel
    return load_matrix_market(args.matrix, platform=args.platform)


def _run_validate(args) -> int:
    from groupspmv._csr.float import csrmv  # pylint: disable=import-outside-toplevel
    from groupspmv._data import DenseVector  # pylint: disable=import-outside-toplevel
    from groupspmv._validate import validate  # pylint: disable=import-outside-toplevel

    with _load(args) as A:
        logger.info('%s: %d x %d, nnz=%d', args.matrix, A.nrows, A.ncols, A.nnz)
        with DenseVector.random(A.ncols, seed=args.seed, platform=args.platform) as x:
            y = csrmv(A, x, width=args.width, backend=args.backend)
            with y:
                y.sync_to_host()
                report = validate(A, x, y, reference=args.reference, eps=args.eps)
    print(report.format(max_report=args.max_report))
    return EXIT_CORRECT if report.correct else EXIT_MISMATCH


def _run_info(args) -> int:
    from groupspmv._csr.launch import launch_config  # pylint: disable=import-outside-toplevel
    from groupspmv._csr.width import select_row_width  # pylint: disable=import-outside-toplevel
    from groupspmv._op.util import device_limits  # pylint: disable=import-outside-toplevel

    with _load(args) as A:
        limits = device_limits(args.platform)
        width = select_row_width(A.max_nnz_per_row, limits.warp_size)
        cfg = launch_config(A.nrows, width, limits.max_threads_per_block)
        print(f"matrix:            {args.matrix}")
        print(f"shape:             {A.nrows} x {A.ncols}")
        print(f"nnz:               {A.nnz}")
        print(f"max nnz per row:   {A.max_nnz_per_row}")
        print(f"row width:         {cfg.width}")
        print(f"rows per block:    {cfg.rows_per_block}")
        print(f"threads per block: {cfg.threads_per_block}")
        print(f"blocks:            {cfg.num_blocks}")
    return 0


def _run_benchmark(args) -> int:
    from groupspmv._csr.float import csrmv_p  # pylint: disable=import-outside-toplevel
    from groupspmv._data import DenseVector  # pylint: disable=import-outside-toplevel
    from groupspmv._op.benchmark import (  # pylint: disable=import-outside-toplevel
        BenchmarkRecord, BenchmarkResult, benchmark_function,
    )
    from groupspmv._validate import available_references, reference_spmv  # pylint: disable=import-outside-toplevel
    from groupspmv.config import save_user_defaults  # pylint: disable=import-outside-toplevel

    label = os.path.basename(args.matrix)
    with _load(args) as A:
        data_kwargs = {'nrows': A.nrows, 'ncols': A.ncols, 'nnz': A.nnz, 'max_nnz_per_row': A.max_nnz_per_row}
        with DenseVector.random(A.ncols, seed=args.seed, platform=args.platform) as x, \
                DenseVector(A.nrows, platform=args.platform) as y:
            result = csrmv_p.benchmark(
                A, x, y,
                platform=args.platform,
                label=label,
                n_warmup=args.n_warmup,
                n_runs=args.n_runs,
                data_kwargs=data_kwargs,
            )
            records = result.records
            x_host = x.to_numpy()
            for ref in available_references():
                mean_s, std_s, min_s, _max_s, _ = benchmark_function(
                    lambda: reference_spmv(A, x_host, ref), args.n_warmup, args.n_runs,
                )
                records.append(
                    BenchmarkRecord(
                        platform=args.platform,
                        backend=f'reference:{ref}',
                        label=label,
                        mean_ms=mean_s * 1000.0,
                        std_ms=std_s * 1000.0,
                        min_ms=min_s * 1000.0,
                        data_kwargs=dict(data_kwargs),
                    )
                )
    result = BenchmarkResult(records, primitive_name=result.primitive_name)

    print(f"groupspmv benchmark: platform={args.platform}, matrix={label}, "
          f"n_warmup={args.n_warmup}, n_runs={args.n_runs}")
    print()
    print(result)
    print()

    fastest = result.fastest(kernels_only=True)
    if args.persist and fastest is not None:
        save_user_defaults({csrmv_p.name: {args.platform: fastest.backend}})
        print(f"Fastest backend {fastest.backend!r} persisted to config file.")

    if args.output:
        result.save(args.output)
        print(f"Results written to {args.output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code.
    """
    from groupspmv._error import (  # pylint: disable=import-outside-toplevel
        AcceleratorError, KernelNotAvailableError, MatrixReadError,
    )

    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    _configure_logging(args.verbose)
    commands = {
        'validate': _run_validate,
        'info': _run_info,
        'benchmark': _run_benchmark,
    }
    try:
        return commands[args.command](args)
    except MatrixReadError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_READ_ERROR
    except (AcceleratorError, KernelNotAvailableError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ACCELERATOR_ERROR


if __name__ == '__main__':
    sys.exit(main())
