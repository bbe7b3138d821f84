import asyncio
from datetime import datetime, timezone
import time

import hydra
from hydra.utils import instantiate
from loguru import logger
from omegaconf import DictConfig

from sweepevo.api import get_champion, get_stats, start_run
from sweepevo.environment.config import EnvConfig
from sweepevo.evolution.checkpoint import (
    ArchiveCheckpoint,
    load_checkpoint,
    save_checkpoint,
)
from sweepevo.evolution.engine import EngineConfig
from sweepevo.genome.models import Genome
from sweepevo.policy.topology import PolicyTopology
from sweepevo.utils.logger_setup import setup_logger
from sweepevo.utils.serve import serve_until_signal
from sweepevo.utils.trackers.base import LogWriter
from sweepevo.workers.pool import WorkerPoolConfig


def _build_topology(cfg: DictConfig, env_config: EnvConfig) -> PolicyTopology:
    hidden = tuple(cfg.hidden_units)
    if cfg.topology is None:
        return PolicyTopology(rows=env_config.rows, cols=env_config.cols, hidden_units=hidden)
    return PolicyTopology(rows=cfg.topology.rows, cols=cfg.topology.cols, hidden_units=hidden)


def _initial_genome(kind: str, topology: PolicyTopology) -> Genome | None:
    if kind == "zeros":
        return topology.zeros_genome()
    if kind == "random":
        # start_run draws it from the run seed
        return None
    raise ValueError(f"initial_genome must be 'random' or 'zeros', got '{kind}'")


async def run_experiment(cfg: DictConfig) -> None:
    start_time = time.time()

    logger.info("=" * 80)
    logger.info("SweepEvo neuroevolution run")
    logger.info("=" * 80)
    logger.info("Preset: {}", cfg.preset)
    logger.info("Start time: {}", datetime.now(timezone.utc).isoformat())

    writer: LogWriter | None = None
    handle = None
    try:
        logger.info("Step 1/3: Initializing components...")
        env_config: EnvConfig = instantiate(cfg.env, _convert_="all")
        engine_config: EngineConfig = instantiate(cfg.engine, _convert_="all")
        pool_config: WorkerPoolConfig = instantiate(cfg.pool, _convert_="all")
        if cfg.writer:
            writer = instantiate(cfg.writer, _convert_="all").bind(path=[cfg.preset])
        topology = _build_topology(cfg, env_config)
        resume = load_checkpoint(cfg.resume_from) if cfg.resume_from else None
        initial = _initial_genome(cfg.initial_genome, topology)
        logger.info(
            "  Board: {}x{} with {} mines, topology {}x{} hidden={} ({} params)",
            env_config.rows,
            env_config.cols,
            env_config.mines,
            topology.rows,
            topology.cols,
            topology.hidden_units,
            topology.parameter_count,
        )

        logger.info("Step 2/3: Starting workers and evolution...")
        handle = await start_run(
            initial,
            env_config,
            engine_config.population_size,
            engine_config.elite_size,
            pool_config.worker_count,
            topology=topology,
            engine_config=engine_config,
            pool_config=pool_config,
            resume_from=resume,
            writer=writer,
        )
        logger.info(
            "  Workers: {}, max generations: {}",
            handle.pool.worker_count,
            engine_config.max_generations or "unlimited",
        )

        logger.info("Step 3/3: Running until completion or signal...")
        await serve_until_signal(
            stop_coros=(handle.stop(),),
            on_stop=(handle.runner.task,),
        )
        await handle.wait()

    except KeyboardInterrupt:
        logger.info("Run interrupted by user")
    except Exception as e:  # pylint: disable=broad-except
        logger.error("Run failed: {}", e)
        raise
    finally:
        logger.info("Starting cleanup...")
        if handle is not None:
            report = get_stats(handle)
            if report is not None:
                logger.info(
                    "Last generation {}: best={:.1f}, archive top={}",
                    report.generation,
                    report.best_score,
                    report.archive_top_score,
                )
            if get_champion(handle) is not None and engine_config.checkpoint_path:
                save_checkpoint(
                    ArchiveCheckpoint.capture(handle.manager.archive, handle.generation),
                    engine_config.checkpoint_path,
                )
        if writer is not None:
            writer.close()
        duration = time.time() - start_time
        logger.info(
            "Total run duration: {:.2f} seconds ({:.2f} hours)", duration, duration / 3600
        )
        logger.info("=" * 80)


@hydra.main(version_base=None, config_path="config", config_name="config")
def main(cfg: DictConfig) -> None:
    """Main entrypoint with Hydra configuration management."""
    log_file_path = setup_logger(
        log_dir=cfg.logging.log_dir,
        level=cfg.logging.level,
        rotation=cfg.logging.rotation,
        retention=cfg.logging.retention,
    )
    logger.info(
        "Experiment working directory: {}",
        hydra.core.hydra_config.HydraConfig.get().runtime.output_dir,
    )
    logger.info("Log file: {}", log_file_path)
    asyncio.run(run_experiment(cfg))


if __name__ == "__main__":
    main()
