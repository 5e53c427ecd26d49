#!/usr/bin/env python3
"""
Command Line Interface for Market Intelligence
"""

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict

import click
import pandas as pd

from market_intel import EbayCondition, ProductIdentification
from market_intel.config import CONDITION_DESCRIPTIONS, Config, create_sample_env
from market_intel.normalizer import normalize_condition
from market_intel.pipeline import MarketResearchPipeline, get_analysis_summary
from market_intel.query_generator import format_query, generate_search_queries
from market_intel.rate_limiter import RateLimiter, get_rate_limiter

CONDITION_CHOICES = [condition.value for condition in EbayCondition]

BATCH_COLUMNS = {
    'brand': 'brand',
    'model': 'exact_model_name',
    'product_line': 'product_line',
    'style_code': 'style_code',
    'colorway': 'colorway',
    'size': 'size',
    'category': 'category',
}


def product_options(func):
    """Identification fields shared by research/queries"""
    options = [
        click.option('--brand', default='', help='Product brand'),
        click.option('--model', 'exact_model_name', default='', help='Exact model name'),
        click.option('--line', 'product_line', default='', help='Product line'),
        click.option('--style-code', default='', help='Style / SKU code'),
        click.option('--colorway', default='', help='Colorway'),
        click.option('--size', default='', help='Size'),
        click.option('--category', default='other', help='Product category (sneakers, clothing, ...)'),
        click.option('--confidence', default=0.8, type=float, help='Identification confidence (0-1)'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _condition(value: str) -> EbayCondition:
    for condition in EbayCondition:
        if condition.value.lower() == value.lower():
            return condition
    return EbayCondition.GOOD


def _row_to_identification(row) -> ProductIdentification:
    fields = {field: str(row.get(column, '') or '').strip() for column, field in BATCH_COLUMNS.items()}
    try:
        confidence = float(row.get('confidence') or 0.8)
    except ValueError:
        confidence = 0.8
    return ProductIdentification(confidence=confidence, **fields)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, verbose):
    """Market Intelligence - sold-comp research and pricing for resale items"""
    ctx.ensure_object(dict)

    # Load configuration
    config = Config()
    ctx.obj['config'] = config

    # Setup logging
    log_level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(config.log_file)
        ]
    )


@cli.command()
@product_options
@click.option('--condition', type=click.Choice(CONDITION_CHOICES, case_sensitive=False),
              default='Good', help='Listing condition')
@click.option('--json', 'as_json', is_flag=True, help='Print the full result as JSON')
@click.pass_context
def research(ctx, condition, as_json, **fields):
    """Research sold comps and price one product"""
    config = ctx.obj['config']

    if not config.validate():
        click.echo("❌ Configuration validation failed. Please check your .env file.")
        ctx.exit(1)

    identification = ProductIdentification(**fields)
    if identification.is_empty:
        click.echo("⚠️  No identification fields given - result will be an estimate")

    pipeline = MarketResearchPipeline(config)
    result = pipeline.research(identification, _condition(condition))

    if as_json:
        click.echo(json.dumps(asdict(result), indent=2, default=str))
    else:
        click.echo(get_analysis_summary(result))


@cli.command()
@click.argument('csv_file', type=click.Path(exists=True))
@click.option('--output', '-o', default=None, help='Write results to this CSV')
@click.option('--workers', default=2, type=int, help='Products researched concurrently')
@click.pass_context
def batch(ctx, csv_file, output, workers):
    """Research every product in a CSV (brand, model, style_code, size, condition, ...)"""
    config = ctx.obj['config']

    if not config.validate():
        click.echo("❌ Configuration validation failed. Please check your .env file.")
        ctx.exit(1)

    df = pd.read_csv(csv_file, dtype=str).fillna('')
    click.echo(f"📊 Found {len(df)} products to research")

    # All workers share one limiter so the marketplace budget holds across threads
    limiter = get_rate_limiter(config)
    pipeline = MarketResearchPipeline(config, rate_limiter=limiter)
    cancel = threading.Event()
    rows = []

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        futures = {}
        for index, row in df.iterrows():
            identification = _row_to_identification(row)
            condition = _condition(row.get('condition') or 'Good')
            futures[executor.submit(pipeline.research, identification, condition, cancel)] = index

        try:
            for future in as_completed(futures):
                result = future.result()
                pricing = result.pricing
                rows.append({
                    'row': futures[future],
                    'title': result.listing.title,
                    'recommended_price': pricing.recommended_price,
                    'quick_sale_price': pricing.quick_sale_price,
                    'max_profit_price': pricing.max_profit_price,
                    'strategy': pricing.strategy.value,
                    'sold_count': result.sold_count,
                    'data_quality': result.data_quality.value,
                    'confidence': result.confidence.overall,
                    'is_estimate': pricing.is_estimate,
                })
                click.echo(f"  • {result.listing.title}: ${pricing.recommended_price:.2f} "
                           f"({result.sold_count} comps, {result.data_quality.value})")
        except KeyboardInterrupt:
            click.echo("🛑 Cancelling remaining research...")
            cancel.set()
            raise

    results = pd.DataFrame(rows).sort_values('row') if rows else pd.DataFrame()
    if output:
        results.to_csv(output, index=False)
        click.echo(f"📄 Results written to: {output}")

    click.echo(f"✅ Researched {len(rows)} products")
    click.echo(f"🚦 Rate limiter: {limiter.health_summary()}")


@cli.command()
@product_options
def queries(**fields):
    """Show the search queries generated for a product"""
    identification = ProductIdentification(**fields)
    query_sets = generate_search_queries(identification)

    if not query_sets:
        click.echo("❌ No queries - every identification field is empty")
        return

    click.echo(f"🔍 {len(query_sets)} query sets (most specific first):")
    for index, tokens in enumerate(query_sets, 1):
        click.echo(f"  {index}. {format_query(tokens)}")


@cli.command()
@click.argument('condition')
def map_condition(condition):
    """Test condition normalization for a free-text condition"""
    click.echo(f"🔍 Mapping condition: '{condition}'")

    label = normalize_condition(condition)
    click.echo(f"✅ Canonical condition: {label}")
    click.echo(f"📝 Description: {CONDITION_DESCRIPTIONS[label]}")

    # Show some examples
    click.echo("\n💡 Other condition examples:")
    examples = ["New with tags", "NWOT", "Pre-owned", "Like new, worn once", "Excellent", "Heavy wear"]
    for example in examples:
        if example.lower() != condition.lower():
            click.echo(f"  • '{example}' → {normalize_condition(example)}")


@cli.command()
@click.option('--jitter', default=1.0, type=float, help='Fixed jitter factor (0.8-1.2)')
@click.pass_context
def backoff(ctx, jitter):
    """Show the retry backoff schedule"""
    config = ctx.obj['config']
    limiter = RateLimiter.from_config(config)

    click.echo(f"⏱️  Backoff schedule (base {config.base_retry_delay:.0f}s, "
               f"cap {config.max_backoff_seconds:.0f}s, jitter {jitter}):")
    for retry in range(config.max_retries + 1):
        click.echo(f"  Retry {retry}: {limiter.backoff_delay(retry, jitter):.1f}s")


@cli.command()
@click.pass_context
def config_info(ctx):
    """Display current configuration"""
    config = ctx.obj['config']

    click.echo("⚙️  Current Configuration:")
    click.echo(f"  App ID: {'set' if config.ebay_app_id else 'missing'}")
    click.echo(f"  Finding API URL: {config.get_finding_api_url()}")
    for key, value in config.to_dict().items():
        click.echo(f"  {key}: {value}")


@cli.command()
@click.option('--path', default='.env', help='Where to write the sample file')
def init_env(path):
    """Create a sample .env file"""
    if create_sample_env(path):
        click.echo(f"📝 Sample environment written to: {path}")
    else:
        click.echo(f"⚠️  {path} already exists - not overwritten")


if __name__ == '__main__':
    cli()
