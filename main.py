"""
Headless CHIP-8 runner.

    python main.py rom=games/pong.ch8 ticks=1200 output.frame=pong.png
    python main.py rom=test.ch8 output.disassemble=true ticks=0
"""

import hydra
from omegaconf import DictConfig, OmegaConf

from chipvm import Machine, MachineConfig, ChipVMError, read_rom
from chipvm.disassembler import format_listing
from chipvm.logging import MachineLogger
from chipvm.rendering import display_to_text, save_frame, save_animation


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    logger = MachineLogger(log_level=cfg.log_level)
    machine_config = MachineConfig.from_omegaconf(cfg.machine)
    logger.log_config(OmegaConf.to_container(cfg.machine))

    rom_path = hydra.utils.to_absolute_path(cfg.rom)

    if cfg.output.disassemble:
        try:
            print(format_listing(read_rom(rom_path), quirks=machine_config.quirks))
        except ChipVMError as e:
            logger.error(str(e))
            return

    machine = Machine(machine_config, logger=logger)
    try:
        machine.load_rom(rom_path)
    except ChipVMError:
        return

    for key in cfg.held_keys:
        machine.input.press(int(key))

    frames = []
    on_tick = (lambda snapshot: frames.append(snapshot.display)) if cfg.output.animation else None

    try:
        snapshot = machine.run(cfg.ticks, progress=cfg.progress, on_tick=on_tick)
    except ChipVMError:
        snapshot = machine.snapshot()

    logger.info(
        f"PC=0x{snapshot.pc:03X} I=0x{snapshot.I:03X} last={snapshot.last_instruction} "
        f"status={snapshot.status.value}"
    )

    if cfg.output.print_display:
        print(display_to_text(snapshot.display))

    if cfg.output.frame:
        filename = hydra.utils.to_absolute_path(cfg.output.frame)
        save_frame(snapshot.display, filename, cfg.output.scale, cfg.output.color_scheme)
        logger.info(f"Frame saved: {filename}")

    if cfg.output.animation and frames:
        filename = hydra.utils.to_absolute_path(cfg.output.animation)
        count = save_animation(
            frames, filename, machine_config.timer_rate, cfg.output.scale, cfg.output.color_scheme
        )
        logger.info(f"Animation saved: {filename} ({count} frames)")


if __name__ == "__main__":
    main()
