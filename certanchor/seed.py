# seed.py
# Seeds the certificate registry with demo certificates and writes their stamped PDFs.

import os
import uuid
import click
from flask import current_app
from flask.cli import with_appcontext

from certanchor.models import db, Certificate
from certanchor.sample_generator import CertificateGenerator, random_fields
from certanchor.services import composer_service, hash_service

DEMO_WALLET = "0x0000000000000000000000000000000000000001"


def seed_certificates(count: int, output_dir: str):
    generator = CertificateGenerator()
    os.makedirs(output_dir, exist_ok=True)

    for index in range(count):
        fields = random_fields()
        fields["cert_id"] = str(uuid.uuid4())
        as_image = index % 2 == 1

        original = generator.create_image(fields) if as_image else generator.create_pdf(fields)
        composed = composer_service.compose(original, is_image=as_image, identifier=fields["cert_id"])
        composed.release_view()

        path = os.path.join(output_dir, f"{fields['cert_id']}.pdf")
        with open(path, "wb") as f:
            f.write(composed.data)

        db.session.add(Certificate(
            cert_id=fields["cert_id"],
            student_name=fields["student_name"],
            course_name=fields["course_name"],
            issue_date=fields["issue_date"],
            university_wallet=DEMO_WALLET,
            university_name=fields["university_name"],
            # Stored without the prefix, as the issuing dashboard does.
            certificate_hash=hash_service.certificate_content_hash(fields)[2:],
        ))
        print(f"✅ {fields['cert_id']}  {fields['student_name']}  -> {path}")

    db.session.commit()


@click.command('seed-db')
@click.option('--count', default=3, show_default=True, help='Number of demo certificates.')
@with_appcontext
def seed_command(count):
    """Recreates the tables and seeds demo certificates."""
    db.drop_all()
    db.create_all()
    print("Database tables dropped and recreated.")

    output_dir = os.path.join(current_app.instance_path, 'stamped')
    seed_certificates(count, output_dir)
    print("🎉 Database seeding and asset generation completed successfully! 🎉")
