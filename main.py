"""
main.py
Chạy pipeline dự đoán attendance từ dòng lệnh.

  python main.py                         # EDA + train + evaluate + plots
  python main.py --mode eda              # chỉ EDA
  python main.py --mode train --seed 7   # train/evaluate với seed khác

Important keywords: Args, Returns, Notes
"""
import argparse
import sys
from attendance.utils import ConfigLoader, Logger, resolve_data_path
from attendance.pipeline import Pipeline, VALID_MODES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fitness class attendance: clean bookings, fit logistic regression and random forest, compare.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --data data/raw/fitness_class_2212.csv
  python main.py --config config/config.yaml --mode eda
        """
    )
    parser.add_argument('--mode', default='full', choices=list(VALID_MODES),
                        help='full = EDA + train + plots (default), eda, train')
    parser.add_argument('--data', default=None,
                        help='File CSV booking; mặc định lấy data.raw_path trong config')
    parser.add_argument('--config', default='config/config.yaml',
                        help='File config YAML')
    parser.add_argument('--seed', type=int, default=None,
                        help='Ghi đè data.random_state (split và random forest)')
    return parser


def main():
    """
    Parse CLI -> load + validate config -> logger 'MAIN' -> Pipeline.run(mode).

    Returns:
        None (exit code 0 khi thành công, 1 khi lỗi khởi tạo hoặc lỗi ở bất kỳ stage nào)
    """
    args = build_parser().parse_args()

    try:
        config = ConfigLoader.load_config(args.config)
        if args.data:
            data_path = resolve_data_path(args.data)
            if data_path is None:
                raise FileNotFoundError(f"Data file not found: {args.data}")
            config.setdefault('data', {})['raw_path'] = data_path
        if args.seed is not None:
            config.setdefault('data', {})['random_state'] = args.seed
        ConfigLoader.validate(config)

        logger = Logger.get_logger(
            name='MAIN',
            log_dir=config.get('artifacts', {}).get('logs_dir', 'artifacts/logs'),
            level=config.get('logging', {}).get('level', 'INFO'),
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"[INIT ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    logger.info("=" * 70)
    logger.info(f"ATTENDANCE PIPELINE | mode={args.mode} | data={config['data'].get('raw_path')} "
                f"| seed={config['data'].get('random_state', 42)}")
    logger.info("=" * 70)

    try:
        result = Pipeline(config, logger).run(mode=args.mode)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.critical(f"Pipeline failed: {e}", exc_info=True)
        sys.exit(1)

    if args.mode != 'eda':
        trainer, metrics = result
        logger.info("=" * 70)
        for name, m in metrics.items():
            logger.info(f"{name:<20} | ACC {m['accuracy']:.4f} | RMSE {m['rmse']:.4f} "
                        f"| AUC {m.get('roc_auc', float('nan')):.4f}")
        logger.info(f"Best by {config.get('evaluation', {}).get('scoring', 'roc_auc')}: {trainer.best_model_name}")
    logger.info("Pipeline Completed")


if __name__ == "__main__":
    main()
