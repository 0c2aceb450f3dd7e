# ============================================
# windcap - src/windcap/cli.py
# Command line entry point for the capacity pipeline
# ============================================

import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from .data.loader import load_table, save_json, save_table
from .pipeline import CapacityPipeline, PipelineConfig
from .utils import config_loader
from .utils.exceptions import WindCapBaseException, log_exception
from .utils.logger import get_logger, set_log_level

logger = get_logger('cli')

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='windcap',
        description='Predict wind turbine capacity with cross-validated KNN regression'
    )
    parser.add_argument('--train', required=True, help='Training table (CSV or Parquet)')
    parser.add_argument('--test', required=True, help='Test table (CSV or Parquet)')
    parser.add_argument('--output-dir', default='windcap_output', help='Directory for result files')
    parser.add_argument('--config', help='Configuration directory holding pipeline.yaml')
    parser.add_argument('--seed', type=int, help='Random seed for folds and permutations')
    parser.add_argument('--folds', type=int, help='Number of cross-validation folds')
    parser.add_argument('--k-min', type=int, help='Smallest K in the search grid')
    parser.add_argument('--k-max', type=int, help='Largest K in the search grid')
    parser.add_argument('--repeats', type=int, help='Permutations per feature')
    parser.add_argument('--n-jobs', type=int, help='Parallel workers (-1 for all cores)')
    parser.add_argument('--drop-incomplete-test', action='store_true',
                        help='Drop test rows with missing features instead of failing')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    """Main function for command line usage"""
    args = build_parser().parse_args(argv)

    if args.verbose:
        set_log_level(logging.DEBUG)

    try:
        if args.config:
            config_loader.config.config_dir = Path(args.config)
            config_loader.reload_configs()

        config = PipelineConfig.from_config(
            random_seed=args.seed,
            n_folds=args.folds,
            k_min=args.k_min,
            k_max=args.k_max,
            n_repeats=args.repeats,
            n_jobs=args.n_jobs,
            drop_incomplete_test=True if args.drop_incomplete_test else None,
        )

        train_raw = load_table(args.train, aliases=config.column_aliases)
        test_raw = load_table(args.test, aliases=config.column_aliases)

        result = CapacityPipeline(config).run(train_raw, test_raw)

        output_dir = Path(args.output_dir)
        save_table(result.predictions_frame(), output_dir / 'predictions.csv', index=True, index_label='row')
        save_table(result.cv_result.to_frame(), output_dir / 'cv_results.csv')
        save_table(result.importance.to_frame(), output_dir / 'importance.csv')
        save_json({**result.summary(), 'config': config.to_dict()}, output_dir / 'summary.json')

    except WindCapBaseException as e:
        log_exception(e, logger)
        print(f"Error [{e.error_code}]: {e.user_message}", file=sys.stderr)
        print(f"  {e.message}", file=sys.stderr)
        return 1
    except config_loader.ConfigValidationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Selected k: {result.best_k}")
    print(f"CV MSE at k={result.best_k}: {result.cv_result.mse_by_k[result.best_k]:.4f}")
    print(f"Estimated generalization MSE: {result.error_estimate:.4f}")
    print(f"Results written to {output_dir}")
    return 0

if __name__ == '__main__':
    sys.exit(main())
