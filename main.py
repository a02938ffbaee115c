#!/usr/bin/env python3
"""
Attendance Assistant - Main Entry Point

Usage:
    python main.py parse "生成本月考勤表"            # Interpret a command
    python main.py generate "生成本周考勤汇总" --excel  # Build a sheet end to end
    python main.py import data.xlsx                  # Import attendance data
    python main.py templates                         # List sheet templates
    python main.py setup                             # Validate configuration
"""
import os
import sys
import json
import argparse
import logging
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

logger = logging.getLogger(__name__)

INTENT_TEMPLATES = {
    "CREATE_DAILY": "DAILY_SIMPLE",
    "CREATE_WEEKLY": "WEEKLY_SUMMARY",
    "CREATE_MONTHLY": "MONTHLY_SUMMARY",
    "CREATE_SUMMARY": "MONTHLY_SUMMARY",
}


def setup_environment():
    """Load environment variables from .env file if present."""
    env_file = PROJECT_ROOT / '.env'
    if env_file.exists():
        with open(env_file, encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ.setdefault(key.strip(), value.strip())


def configure_logging(debug: bool = False):
    """Stream logging; DEBUG when --debug or NLP_DEBUG is set, else LOG_LEVEL."""
    from config.settings import get_config

    config = get_config()
    level = logging.DEBUG if debug or config.nlp.debug else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()],
    )


def print_json(data):
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def cmd_parse(args):
    """Interpret a command and print the result."""
    from src.core.command_processor import get_nlp_processor

    processor = get_nlp_processor()
    if args.ai:
        outcome = processor.process_with_ai(args.text)
        result = outcome.result
        output = result.to_dict()
        if outcome.table is not None:
            output["table"] = outcome.table.to_dict()
        if outcome.error:
            output["error"] = outcome.error
    else:
        result = processor.process(args.text)
        output = result.to_dict()

    validation = processor.validate_intent(result)
    output["validation"] = {"valid": validation.valid, "missing_entities": validation.missing_entities}
    print_json(output)


def _load_data(args, date_range):
    """Employees and records from --data, or seeded mock data for the range."""
    if args.data:
        from src.tools.data_importer import get_data_importer

        imported = get_data_importer().import_from_file(args.data)
        logger.info(f"Loaded {len(imported.records)} records from {args.data}")
        return imported.employees, imported.records

    from src.tools.mock_data_generator import generate_mock_attendance_data
    return generate_mock_attendance_data(date_range, employee_count=args.employees)


def cmd_generate(args):
    """Interpret a command, build the sheet, and optionally write a workbook and chart."""
    from config.settings import get_config
    from src.core.attendance_calendar import format_date_range_display, this_month_range
    from src.core.attendance_types import TemplateType
    from src.core.intent_classifier import AttendanceIntent
    from src.core.command_processor import get_nlp_processor
    from src.tools.chart_generator import generate_chart
    from src.tools.excel_output import get_excel_writer
    from src.tools.sheet_generator import GenerateOptions, calculate_statistics, get_sheet_generator

    config = get_config()
    processor = get_nlp_processor()

    if args.ai:
        outcome = processor.process_with_ai(args.text)
        result = outcome.result
        if outcome.error:
            print(f"⚠️  AI: {outcome.error}")
        if outcome.table is not None:
            _write_generic_table(outcome.table, args, config)
            return
    else:
        result = processor.process(args.text)

    print(f"🧭 Intent: {result.intent.value} (confidence {result.confidence:.2f})")
    validation = processor.validate_intent(result)
    if not validation.valid:
        print(f"   Missing: {', '.join(validation.missing_entities)} (using defaults)")

    entities = result.entities
    date_range = entities.date_range or this_month_range()
    print(f"📅 Range: {format_date_range_display(date_range)}")

    employees, records = _load_data(args, date_range)

    template_type = entities.template_type or TemplateType(
        INTENT_TEMPLATES.get(result.intent.name, TemplateType.DAILY_SIMPLE.value)
    )

    employee_ids = []
    if entities.employees:
        wanted = set(entities.employees)
        employee_ids = [e.id for e in employees if e.name in wanted]
        if not employee_ids:
            logger.debug(f"No known employees among {entities.employees}, keeping all")

    options = GenerateOptions(
        template_type=template_type,
        department=entities.department,
        employee_ids=employee_ids,
    )
    generated = get_sheet_generator().generate(date_range, employees, records, options)
    sheet = generated.sheet

    print(f"📋 Template: {generated.template.name}")
    print(f"   Employees: {len(sheet.employees)}  Records: {len(sheet.records)}")
    if sheet.statistics:
        stats = sheet.statistics
        print(f"   Attendance rate: {stats.attendance_rate}%  Late: {stats.late_count}  Absent: {stats.absent_count}")

    render = generated.render_result
    for row in render.headers[-1:] + render.rows[:args.preview]:
        print("   " + " | ".join("" if v is None else str(v) for v in row))

    if args.excel:
        writer = get_excel_writer(config.output.output_dir)
        if writer is None:
            print("❌ Excel output unavailable (install openpyxl)")
        else:
            location = args.output or writer.default_location(sheet.name)
            written = writer.write_render_result(render, location)
            print(f"{'✅' if written.success else '❌'} Workbook: {written.path or written.error}")

    if args.chart or result.intent == AttendanceIntent.GENERATE_CHART:
        from src.tools.charts import get_chart_renderer

        statistics = sheet.statistics or calculate_statistics(sheet.records, date_range)
        chart_config = generate_chart(entities.chart_type, sheet.employees, sheet.records, statistics, date_range)
        chart = get_chart_renderer(config.output.chart_dir).render(chart_config)
        print(f"📊 Chart: {chart.file_path}")


def _write_generic_table(table, args, config):
    from src.tools.excel_output import get_excel_writer

    print(f"🤖 AI table: {table.title} ({len(table.rows)} rows)")
    for column in table.columns:
        print(f"   - {column.title} ({column.key})")
    if table.summary:
        print(f"   {table.summary}")

    if args.excel:
        writer = get_excel_writer(config.output.output_dir)
        if writer is None:
            print("❌ Excel output unavailable (install openpyxl)")
            return
        location = args.output or writer.default_location(table.title)
        written = writer.write_generic_table(table, location)
        print(f"{'✅' if written.success else '❌'} Workbook: {written.path or written.error}")


def cmd_import(args):
    """Import a CSV or Excel file and print a report."""
    from src.tools.data_importer import get_data_importer

    result = get_data_importer().import_from_file(args.file)

    print("\n" + "="*60)
    print("IMPORT REPORT")
    print("="*60)
    print(f"  Rows: {result.stats.total}")
    print(f"  ✅ Imported: {result.stats.success}")
    print(f"  ❌ Failed: {result.stats.failed}")
    print(f"  Employees: {len(result.employees)}")

    if result.errors:
        print("\n" + "-"*60)
        print("ERRORS")
        print("-"*60)
        for error in result.errors[:args.limit]:
            print(f"  第{error.row}行: {error.message}")

    if result.warnings:
        print("\n" + "-"*60)
        print("WARNINGS")
        print("-"*60)
        for warning in result.warnings[:args.limit]:
            print(f"  {warning}")


def cmd_templates(args):
    """List built-in and registered templates."""
    from src.tools.template_engine import get_template_engine

    registry = get_template_engine().registry
    if args.file:
        loaded = registry.load_templates_from_yaml(args.file)
        print(f"Loaded {len(loaded)} custom templates from {args.file}")

    print("\n" + "="*60)
    print("TEMPLATES")
    print("="*60)
    for template in registry.get_all_templates():
        print(f"  {template.id:<20} {template.type.value:<18} {template.name}")
        print(f"  {'':<20} {' / '.join(h.title for h in template.headers)}")


def cmd_setup(args):
    """Validate configuration and setup."""
    from config.settings import get_config, MODEL_REGISTRY

    print("\n" + "="*60)
    print("CONFIGURATION VALIDATION")
    print("="*60)

    config = get_config()

    print(f"\n🧠 NLP Mode: {config.nlp.mode.value}")
    print(f"   Confidence threshold: {config.nlp.min_confidence}")
    print(f"   Context carry-over: {'on' if config.nlp.use_context else 'off'}")

    # Check active model
    print(f"\n📊 Active Model: {config.active_model}")
    try:
        model_config = config.model_config
        print(f"   Provider: {model_config.provider.value}")
        print(f"   Model: {model_config.model_name}")

        status = "✅" if model_config.is_configured else "❌"
        print(f"   {status} API Key ({model_config.api_key_env}): {'Set' if model_config.is_configured else 'MISSING'}")
        if model_config.base_url_env:
            print(f"   Endpoint ({model_config.base_url_env}): {model_config.base_url or 'default'}")
    except ValueError as e:
        print(f"   ❌ Error: {e}")

    print(f"\n📁 Output:")
    print(f"   Workbooks: {config.output.output_dir}")
    print(f"   Charts: {config.output.chart_dir}")

    print(f"\n📦 Libraries:")
    for module in ("openpyxl", "matplotlib", "pandas", "yaml", "pydantic"):
        try:
            __import__(module)
            print(f"   ✅ {module}")
        except ImportError:
            print(f"   ❌ {module}: MISSING")

    # Available models
    print(f"\n🤖 Available Models:")
    for name in MODEL_REGISTRY:
        marker = "→" if name == config.active_model else " "
        print(f"   {marker} {name}")

    print("\n" + "="*60)
    print("To switch models, set: ACTIVE_MODEL=<model-name>")
    print("To enable the AI path, set: NLP_MODE=hybrid (or api)")
    print("="*60)


def main():
    setup_environment()

    parser = argparse.ArgumentParser(
        description="Attendance Assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py parse "统计本月出勤率"            Interpret a command
  python main.py generate "生成本月考勤表" --excel  Build and save a sheet
  python main.py import attendance.csv            Import attendance data
  python main.py setup                            Check configuration

Environment Variables:
  NLP_MODE              local | api | hybrid (default: local)
  CONFIDENCE_THRESHOLD  Minimum rule confidence (default: 0.7)
  ACTIVE_MODEL          LLM for the AI path (default: gpt-3.5-turbo)
  OPENAI_API_KEY        OpenAI or compatible API key
  OPENAI_BASE_URL       OpenAI-compatible endpoint
        """
    )
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Parse command
    parse_parser = subparsers.add_parser('parse', help='Interpret a command')
    parse_parser.add_argument('text', help='Natural-language command')
    parse_parser.add_argument('--ai', action='store_true', help='Use the AI-assisted path')
    parse_parser.set_defaults(func=cmd_parse)

    # Generate command
    generate_parser = subparsers.add_parser('generate', help='Generate an attendance sheet')
    generate_parser.add_argument('text', help='Natural-language command')
    generate_parser.add_argument('--data', help='CSV/XLSX attendance file (default: mock data)')
    generate_parser.add_argument('--excel', action='store_true', help='Write the sheet to a workbook')
    generate_parser.add_argument('--output', help='Workbook location: path.xlsx[!sheet[!cell]]')
    generate_parser.add_argument('--chart', action='store_true', help='Render a chart')
    generate_parser.add_argument('--ai', action='store_true', help='Use the AI-assisted path')
    generate_parser.add_argument('--employees', type=int, default=10, help='Mock employee count')
    generate_parser.add_argument('--preview', type=int, default=10, help='Rows to print')
    generate_parser.set_defaults(func=cmd_generate)

    # Import command
    import_parser = subparsers.add_parser('import', help='Import attendance data')
    import_parser.add_argument('file', help='CSV or Excel file')
    import_parser.add_argument('--limit', type=int, default=20, help='Max errors/warnings to print')
    import_parser.set_defaults(func=cmd_import)

    # Templates command
    templates_parser = subparsers.add_parser('templates', help='List templates')
    templates_parser.add_argument('--file', help='YAML file with custom templates')
    templates_parser.set_defaults(func=cmd_templates)

    # Setup command
    setup_parser = subparsers.add_parser('setup', help='Validate setup')
    setup_parser.set_defaults(func=cmd_setup)

    args = parser.parse_args()
    configure_logging(args.debug)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        sys.exit(1)

if __name__ == "__main__":
    main()
