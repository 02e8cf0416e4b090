#!/usr/bin/env python3
"""
Run Backtest - GBM 가격 경로로 Alpha Vault 리밸런스 백테스트

Usage:
    # 기본 설정 (.env 반영)
    python -m alpha_vault.scripts.run_backtest --steps 168 --volatility 0.01

    # 차트 저장 + CSV 출력
    python -m alpha_vault.scripts.run_backtest --steps 500 --seed 7 --plot chart.png --output result.csv
"""

import argparse
import logging
from typing import Any, Dict, Optional

import pandas as pd
import matplotlib.pyplot as plt

from alpha_vault.backtest import build_environment, run_backtest, simulate_price_path, summarize
from alpha_vault.config import settings


def create_chart(df: pd.DataFrame, output_path: Optional[str] = None, show: bool = False):
    """틱/범위와 지분당 가치 2패널 차트"""
    fig, axes = plt.subplots(2, 1, figsize=(14, 9), sharex=True)
    fig.patch.set_facecolor('white')

    # 1. Tick with vault ranges
    ax1 = axes[0]
    ax1.plot(df['datetime'], df['tick'], 'k-', lw=1, label='Tick')
    ax1.fill_between(df['datetime'], df['base_lower'], df['base_upper'],
                     step='post', alpha=0.15, color='blue', label='Base')
    ax1.fill_between(df['datetime'], df['limit_lower'], df['limit_upper'],
                     step='post', alpha=0.25, color='orange', label='Limit')
    rebalances = df[df['rebalanced']]
    ax1.scatter(rebalances['datetime'], rebalances['tick'], marker='v', color='red', s=20, label='Rebalance')
    ax1.set_ylabel('Tick')
    ax1.set_title('Tick with Vault Ranges', fontweight='bold')
    ax1.legend(loc='upper left', fontsize=8)
    ax1.grid(alpha=0.3)

    # 2. Value per share vs HODL
    ax2 = axes[1]
    ax2.plot(df['datetime'], df['value_per_share'], color='green', lw=1.5, label='Vault')
    ax2.plot(df['datetime'], df['hodl_per_share'], 'k--', lw=1.5, label='HODL')
    ax2.set_ylabel('Value per share (token1)')
    ax2.set_title('Value per Share', fontweight='bold')
    ax2.legend(loc='upper left', fontsize=8)
    ax2.grid(alpha=0.3)

    plt.tight_layout()

    if output_path:
        plt.savefig(output_path, dpi=150, bbox_inches='tight', facecolor='white')
        print(f"✅ 차트 저장: {output_path}")

    if show:
        plt.show()
    else:
        plt.close()


def print_summary(summary: Dict[str, Any]):
    print("\n" + "=" * 60)
    print("ALPHA VAULT BACKTEST")
    print("=" * 60)
    print(f"\n📅 스텝: {summary['steps']}  (리밸런스 {summary['rebalances']}회)")
    print(f"\n📊 가격 변동:")
    print(f"   시작: {summary['start_price']:,.4f}")
    print(f"   종료: {summary['end_price']:,.4f}")
    print(f"   변화: {summary['price_change_pct']:+.2f}%")
    print(f"\n💰 지분당 가치 (token1):")
    print(f"   시작: {summary['start_value_per_share']:,.6f}")
    print(f"   종료: {summary['end_value_per_share']:,.6f}")
    print(f"   변화: {summary['value_per_share_change_pct']:+.2f}%")
    print(f"   vs HODL: {summary['vs_hodl_pct']:+.2f}%")
    print(f"   base 범위 내 비율: {summary['in_range_pct']:.0f}%")
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(
        description="GBM 가격 경로로 Alpha Vault 백테스트 실행",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m alpha_vault.scripts.run_backtest --steps 168 --volatility 0.01
  python -m alpha_vault.scripts.run_backtest --steps 500 --seed 7 --plot chart.png --output result.csv
        """
    )

    parser.add_argument("--steps", type=int, default=168, help="스텝 수 (기본: 168)")
    parser.add_argument("--volatility", type=float, default=0.01, help="스텝당 로그 수익률 표준편차")
    parser.add_argument("--seed", type=int, default=None, help="난수 시드")
    parser.add_argument("--step-seconds", type=int, default=3600, help="스텝 간격 (초)")
    parser.add_argument("--plot", type=str, nargs='?', const='__show__', default=None,
                        help="차트 표시 (파일 경로 지정시 저장, 미지정시 창으로 표시)")
    parser.add_argument("--output", type=str, help="결과 CSV 경로")

    args = parser.parse_args()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    env = build_environment(settings)
    path = simulate_price_path(args.steps, args.volatility, args.seed)
    df = run_backtest(env, path, args.step_seconds)

    print_summary(summarize(df))

    if args.output:
        df.to_csv(args.output, index=False)
        print(f"✅ CSV 저장: {args.output}")

    if args.plot is not None:
        show_chart = args.plot == '__show__'
        create_chart(df, None if show_chart else args.plot, show=show_chart)


if __name__ == "__main__":
    main()
