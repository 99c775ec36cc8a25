# certanchor/cli.py
# Operator commands for stamping certificates and scanning codes from a camera.

import os
import threading
import click
from flask import current_app
from flask.cli import with_appcontext

from certanchor.exceptions import ScanError
from certanchor.services import composer_service, extractor_service
from certanchor.services.qr_service import QrScanner

IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg'}


@click.command('stamp-certificate')
@click.argument('source', type=click.Path(exists=True, dir_okay=False))
@click.argument('output', type=click.Path(dir_okay=False))
@click.option('--cert-id', required=True, help='Certificate identifier to embed.')
def stamp_command(source, output, cert_id):
    """Writes SOURCE with a verification QR code to OUTPUT (always a PDF)."""
    is_image = os.path.splitext(source)[1].lower() in IMAGE_EXTENSIONS
    with open(source, 'rb') as f:
        original = f.read()

    composed = composer_service.compose(original, is_image=is_image, identifier=cert_id)
    composed.release_view()
    with open(output, 'wb') as f:
        f.write(composed.data)
    click.echo(f"✅ Stamped certificate written to {output}")


@click.command('scan-qr')
@click.option('--device', type=int, default=None, help='Camera index (defaults to SCANNER_DEVICE).')
@click.option('--timeout', type=float, default=60.0, show_default=True)
@with_appcontext
def scan_command(device, timeout):
    """Scans a certificate QR code with the camera and prints its ID."""
    if device is None:
        device = current_app.config.get('SCANNER_DEVICE', 0)
    found = threading.Event()
    scanned = {}

    def on_scan(text):
        scanned['id'] = extractor_service.parse_identifier(text)
        found.set()

    with QrScanner(device=device) as scanner:
        try:
            scanner.start(on_scan)
        except ScanError as e:
            raise click.ClickException(str(e))
        click.echo("Point the camera at a certificate QR code...")
        found.wait(timeout)

    if not found.is_set():
        raise click.ClickException(f"No QR code scanned within {timeout:.0f} seconds.")
    click.echo(scanned['id'])
