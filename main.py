import argparse
import logging

def main():
    parser = argparse.ArgumentParser(description="Induction motor flux and speed observer demos")
    parser.add_argument(
        "--demo",
        type=str,
        default=None,
        choices=["sensored", "sensorless", "speed_step", "noise"],
    )
    parser.add_argument("--log-level", type=str, default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    if args.demo is None:
        print("Nothing to do. Use --demo <name>.")
        return

    from imobserver.sim.simulator import (
        run_sensored_demo,
        run_sensorless_demo,
        run_speed_step_demo,
        run_noise_demo,
    )

    if args.demo == "sensored":
        run_sensored_demo()
    elif args.demo == "sensorless":
        run_sensorless_demo()
    elif args.demo == "speed_step":
        run_speed_step_demo()
    else:
        run_noise_demo()

if __name__ == "__main__":
    main()
