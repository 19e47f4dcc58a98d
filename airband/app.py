
import argparse
import logging

from rich import print

from .config import load_config
from .calibration import CalibrationFailure
from .io import read_landmarks, load_frame, JsonlEventSink
from .motion import ReplayScheduler
from .pipeline import AirbandSession


def parse_args(argv=None):
    p = argparse.ArgumentParser(prog='airband')
    p.add_argument('--config', type=str, default=None)
    p.add_argument('--log-level', type=str, default='INFO')
    sub = p.add_subparsers(dest='command', required=True)

    cal = sub.add_parser('calibrate', help='detect the paper surface in an image')
    cal.add_argument('--image', type=str, required=True)
    cal.add_argument('--zones', type=int, default=None)

    rep = sub.add_parser('replay', help='replay a JSONL landmark recording')
    rep.add_argument('--landmarks', type=str, required=True)
    rep.add_argument('--image', type=str, default=None, help='calibration frame (piano)')
    rep.add_argument('--layout', type=str, default=None)
    rep.add_argument('--out', type=str, default=None)
    return p.parse_args(argv)


def run_calibrate(cfg, args) -> int:
    session = AirbandSession(cfg)
    result = session.calibrate_now(load_frame(args.image), args.zones)
    if isinstance(result, CalibrationFailure):
        print(f'[bold red]Calibration failed:[/bold red] {result.kind.value} ({result.message})')
        return 1
    quad = result.quad
    print(f'[bold green]Surface found[/bold green] area={quad.area:.0f}px²')
    for name, (x, y) in zip(('TL', 'TR', 'BR', 'BL'), quad.corners()):
        print(f'  {name}: ({x:.0f}, {y:.0f})')
    for z in result.zones:
        x1, y1, x2, y2 = z.bounds
        print(f'  [cyan]{z.zone_id}[/cyan] -> {z.output}  ({x1:.0f}, {y1:.0f}) - ({x2:.0f}, {y2:.0f})')
    return 0


def run_replay(cfg, args) -> int:
    if args.layout:
        cfg.update('session', layout=args.layout)

    sink = JsonlEventSink(args.out) if args.out else None
    # Replay timestamps drive everything, including shake repeats
    replay = ReplayScheduler()
    printed = []

    def show(evt):
        printed.append(evt)
        print(f'{evt.timestamp:8.3f}s  [bold]{evt.zone_id}[/bold]  {evt.kind:6s} '
              f'entity={evt.entity_id} intensity={evt.intensity:.2f}')

    with AirbandSession(cfg, scheduler=replay, clock=replay) as session:
        if args.image:
            result = session.calibrate_now(load_frame(args.image))
            if isinstance(result, CalibrationFailure):
                print(f'[bold red]Calibration failed:[/bold red] {result.kind.value}')
                return 1
        session.add_sink(show)
        if sink is not None:
            session.add_sink(sink)

        for tick in read_landmarks(args.landmarks):
            replay.advance(tick.timestamp)
            session.process_landmarks(tick.hands, tick.timestamp)

    if sink is not None:
        sink.close()
        print(f'Wrote {sink.count} events to {args.out}')
    print(f'[bold green]Done.[/bold green] {len(printed)} events')
    return 0


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s %(name)s [%(levelname)s] %(message)s',
    )
    cfg = load_config(args.config)
    print('[bold green]Launching airband[/bold green]')
    if args.command == 'calibrate':
        return run_calibrate(cfg, args)
    return run_replay(cfg, args)


if __name__ == '__main__':
    raise SystemExit(main())
