"""CLI entry point for QR vCard Generator."""

import argparse
import logging
import sys

from qr_vcard_generator import LOGO_SIZE, __version__


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qr-vcard",
        description="Turn contact details into a scannable vCard QR code.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic contact card
  python -m qr_vcard_generator --name "Jane Doe" \\
    --phone "+1 (555) 123-4567" --email jane@example.com

  # With company details and a photo as the center logo
  python -m qr_vcard_generator --name "Jane Doe" \\
    --phone "+15551234567" --email jane@example.com \\
    --company "Acme, Inc." --job-title "Engineer" --photo me.jpg

  # Print the vCard text as well
  python -m qr_vcard_generator --name "Jane Doe" \\
    --phone "+15551234567" --email jane@example.com --print-vcard
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    # Contact details (required unless --self-test)
    parser.add_argument("--name", help="Full name")
    parser.add_argument("--phone", help="Phone number")
    parser.add_argument("--email", help="Email address")

    # Optional — contact details
    parser.add_argument("--company", default=None, help="Company or organization")
    parser.add_argument("--job-title", default=None, help="Job title")
    parser.add_argument("--website", default=None, help="Website URL (e.g. https://example.com)")
    parser.add_argument("--address", default=None, help="Home address")
    parser.add_argument("--notes", default=None, help="Free-form notes")

    # Optional — input/output
    parser.add_argument(
        "--photo",
        default=None,
        help="Photo to use as the center logo (JPG, PNG, GIF, WebP, max 2MB)",
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Output image path (default: <name>-qr-code.png)",
    )

    # Optional — generation parameters
    parser.add_argument(
        "--renderer",
        default="qrcode",
        choices=["qrcode", "segno"],
        help="QR render backend. Default: qrcode",
    )
    parser.add_argument(
        "--logo-size",
        type=int,
        default=LOGO_SIZE,
        help=f"Logo side in pixels. Default: {LOGO_SIZE}",
    )
    parser.add_argument(
        "--max-payload",
        type=int,
        default=None,
        help="Override the maximum vCard length (env: QR_VCARD_MAX_PAYLOAD)",
    )
    parser.add_argument(
        "--embed-threshold",
        type=int,
        default=None,
        help="Override the maximum embedded photo size in base64 chars "
             "(env: QR_VCARD_PHOTO_EMBED_THRESHOLD)",
    )

    # Flags
    parser.add_argument(
        "--no-logo",
        action="store_true",
        help="Do not draw the photo over the QR code",
    )
    parser.add_argument(
        "--print-vcard",
        action="store_true",
        help="Print the encoded vCard text",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite output file without prompting",
    )
    parser.add_argument(
        "--self-test",
        action="store_true",
        help="Render a fixed test card to check the render backend, then exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


SELF_TEST_VCARD = (
    "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:Test User\r\n"
    "TEL:+1234567890\r\nEMAIL:test@example.com\r\nEND:VCARD"
)


def _self_test(renderer) -> int:
    """Render a fixed minimal card to check that the backend works."""
    from qr_vcard_generator.errors import RenderFailureError
    from qr_vcard_generator.strategy import ErrorCorrection, QrRenderSpec

    print(f"\nSelf-test: rendering a test card via {renderer.name()}...")
    try:
        image = renderer.render(SELF_TEST_VCARD, QrRenderSpec(128, ErrorCorrection.M))
    except RenderFailureError as e:
        print(f"\n  ERROR: Test QR generation failed: {e.message}", file=sys.stderr)
        return 1
    print(f"  ✓ Test QR code generated successfully ({image.width}x{image.height}px)")
    return 0


def main(argv: list[str] | None = None) -> int:
    import dataclasses
    import os
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.self_test:
        missing = [flag for flag, value in (
            ("--name", args.name), ("--phone", args.phone), ("--email", args.email),
        ) if value is None]
        if missing:
            parser.error(f"the following arguments are required: {', '.join(missing)}")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Lazy imports for faster --help
    from qr_vcard_generator.contact import ContactRecord
    from qr_vcard_generator.errors import AppError, ExhaustedError, ValidationError
    from qr_vcard_generator.fallback import FallbackController
    from qr_vcard_generator.image_utils import output_filename, save_output
    from qr_vcard_generator.renderer import get_renderer
    from qr_vcard_generator.session import FormSession
    from qr_vcard_generator.strategy import CapacityPolicy

    print(f"QR vCard Generator v{__version__}")
    print("=" * 50)

    if args.self_test:
        return _self_test(get_renderer(args.renderer))

    # ------------------------------------------------------------------
    # Resolve capacity policy
    # ------------------------------------------------------------------
    try:
        policy = CapacityPolicy.from_env()
        overrides = {}
        if args.max_payload is not None:
            overrides["max_payload_length"] = args.max_payload
        if args.embed_threshold is not None:
            overrides["photo_embed_threshold"] = args.embed_threshold
        if overrides:
            policy = dataclasses.replace(policy, **overrides)
    except ValueError as e:
        print(f"\n  ERROR: {e}", file=sys.stderr)
        return 1

    controller = FallbackController(
        get_renderer(args.renderer), policy, apply_logo=not args.no_logo
    )
    session = FormSession(controller)

    # Step 1: Validate the form
    print("\n[1/4] Validating contact details")
    form = {
        "fullName": args.name,
        "phone": args.phone,
        "email": args.email,
        "company": args.company,
        "jobTitle": args.job_title,
        "website": args.website,
        "address": args.address,
        "notes": args.notes,
    }
    try:
        contact = ContactRecord.from_form(form)
    except ValidationError as e:
        print(f"\n  ERROR: {e.message}", file=sys.stderr)
        for field_name, problem in e.details.get("fields", {}).items():
            print(f"    - {field_name}: {problem}", file=sys.stderr)
        return 1
    print("  ✓ Contact details look good")

    # ------------------------------------------------------------------
    # Check output overwrite
    # ------------------------------------------------------------------
    output = args.output or output_filename(contact.full_name)
    if os.path.exists(output) and not args.overwrite:
        response = input(f"  Output file '{output}' already exists. Overwrite? [y/N] ")
        if response.lower() not in ("y", "yes"):
            print("  Aborted.")
            return 0

    # Step 2: Prepare photo if provided
    if args.photo:
        print(f"\n[2/4] Loading photo: {args.photo}")
        try:
            session.upload_photo(args.photo, logo_size=args.logo_size)
            print(f"  ✓ Photo cropped to a {args.logo_size}px square logo")
        except (AppError, FileNotFoundError) as e:
            message = e.message if isinstance(e, AppError) else str(e)
            print(f"  ⚠️  WARNING: {message}. Continuing without photo.", file=sys.stderr)
    else:
        print("\n[2/4] No photo — plain QR code")

    # Step 3: Generate with fallback
    print(f"\n[3/4] Generating QR code via {controller.renderer.name()}...")
    try:
        result = session.submit(contact)
    except ExhaustedError as e:
        print(f"\n  ERROR: {e.message}", file=sys.stderr)
        print(f"    Tried tiers: {', '.join(e.attempted)}", file=sys.stderr)
        return 1

    print(f"  vCard size:      {len(result.payload)} chars")
    print(f"  Width:           {result.spec.pixel_width}px")
    print(f"  Error level:     {result.spec.error_correction.value}")
    print(f"  Tier:            {result.tier_used.value}")
    if result.degraded:
        print(f"  ⚠️  {result.reason}")
    if session.photo is not None and not args.no_logo:
        if result.logo_applied:
            print("  ✓ Photo added as center logo")
        else:
            print("  ⚠️  Could not add the logo, using plain QR code", file=sys.stderr)

    if args.print_vcard:
        print()
        print(session.last_vcard)

    # Step 4: Save
    print(f"\n[4/4] Saving output to: {output}")
    try:
        save_output(result.image, output)
    except OSError as e:
        print(f"\n  ERROR: Could not save output: {e}", file=sys.stderr)
        return 1

    print(f"\n✅ Done! Your contact QR code is at: {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
