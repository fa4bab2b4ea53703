"""
Export Bob's persisted learning state for offline analysis.

Prints a summary of the memory file and writes sessions.csv and
opponents.csv. Safe to run while the bot is stopped; it never modifies
the memory file.

Usage:
    # Summary + CSV export using MEMORY_FILE / EXPORT_DIR from the environment
    python3 scripts/export_memory.py

    # Explicit paths
    python3 scripts/export_memory.py --memory-file data/bob-memory.json --out-dir exports

    # Summary only
    python3 scripts/export_memory.py --no-csv
"""
import sys
from pathlib import Path

# Add project root to path when run as script
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from blackjack.config import configure_logging, load_config
from blackjack.memory import MemoryManager


def summarize(manager: MemoryManager) -> None:
    memory = manager.memory
    perf = memory.performance
    effectiveness = manager.get_learning_effectiveness()

    print(f"Memory version:     {memory.version}")
    print(f"Sessions played:    {memory.total_sessions_played}")
    print(f"Hands played:       {memory.total_hands_played}")
    print(f"First places:       {perf.total_wins} (top 3: {perf.total_top3})")
    print(f"Total profit:       {perf.total_profit:.2f}")
    print(f"Opponent profiles:  {len(memory.opponent_profiles)}")
    if effectiveness.sessions_played >= 20:
        print(f"Improvement rate:   {effectiveness.improvement_rate * 100:+.1f}%")

    weak = [p for p in memory.opponent_profiles.values() if 'poor_strategy' in p.weaknesses]
    if weak:
        print("\nOpponents with poor strategy:")
        for profile in sorted(weak, key=lambda p: p.stats.skill_score):
            print(f"  {profile.opponent_id}: skill {profile.stats.skill_score:.2f}, "
                  f"{profile.sessions_played} sessions")


def main(memory_file: str, out_dir: str, write_csv: bool = True) -> int:
    manager = MemoryManager(memory_file)
    manager.load()
    summarize(manager)

    if write_csv:
        paths = manager.export_to_csv(out_dir)
        if paths is None:
            return 1
        for path in paths:
            print(f"Wrote {path.resolve()}")
    return 0


if __name__ == '__main__':
    import argparse
    config = load_config()
    parser = argparse.ArgumentParser(description='Export Bob\'s learning memory')
    parser.add_argument('--memory-file', default=config.memory_file, help='Memory JSON file')
    parser.add_argument('--out-dir', default=config.export_dir, help='Directory for CSV files')
    parser.add_argument('--no-csv', action='store_true', help='Print the summary only')
    parser.add_argument('--log-level', default=config.log_level, help='Logging level')
    args = parser.parse_args()

    configure_logging(args.log_level)
    sys.exit(main(args.memory_file, args.out_dir, write_csv=not args.no_csv))
