"""
Seed script: loads a starter control catalog (SCF + CIS samples) and a
SOC 2 framework with a handful of framework controls.
Idempotent: catalog rows are matched on control_id, the framework on code.
Run: cd backend && python ../scripts/seed_catalog.py
"""
import asyncio
import os
import sys
from pathlib import Path

# Ensure backend is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))
os.chdir(str(Path(__file__).resolve().parent.parent / "backend"))

from sqlalchemy import select  # noqa: E402

from grcportal.database import async_session, engine  # noqa: E402
from grcportal.models import (  # noqa: E402
    Control,
    ControlPriority,
    Framework,
    FrameworkControl,
    FrameworkStatus,
    FrameworkType,
    ImplementationStatus,
)
from grcportal.services.framework_progress import recalculate_progress  # noqa: E402


CONTROLS = [
    {"control_id": "GOV-01", "source": "SCF", "domain": "Cybersecurity & Data Protection Governance", "name": "Cybersecurity & Data Protection Governance Program", "description": "Mechanisms exist to facilitate the implementation of cybersecurity and data protection governance controls.", "nist_800_53": "PM-1", "nist_csf": "GV.OV", "iso_27k": "5.1"},
    {"control_id": "IAC-01", "source": "SCF", "domain": "Identification & Authentication", "name": "Identity & Access Management", "description": "Mechanisms exist to facilitate the implementation of identification and access management controls.", "nist_800_53": "IA-1", "nist_csf": "PR.AA", "iso_27k": "5.16"},
    {"control_id": "IAC-06", "source": "SCF", "domain": "Identification & Authentication", "name": "Multi-Factor Authentication (MFA)", "description": "Automated mechanisms exist to enforce MFA for remote network access and privileged accounts.", "nist_800_53": "IA-2(1)", "nist_csf": "PR.AA-03", "pci_4": "8.4"},
    {"control_id": "CRY-01", "source": "SCF", "domain": "Cryptographic Protections", "name": "Use of Cryptographic Controls", "description": "Mechanisms exist to facilitate the implementation of cryptographic protections controls.", "nist_800_53": "SC-13", "iso_27k": "8.24"},
    {"control_id": "MON-01", "source": "SCF", "domain": "Continuous Monitoring", "name": "Continuous Monitoring", "description": "Mechanisms exist to facilitate the implementation of enterprise-wide monitoring controls.", "nist_800_53": "SI-4", "nist_csf": "DE.CM", "mitre": "T1078"},
    {"control_id": "BCD-11", "source": "SCF", "domain": "Business Continuity & Disaster Recovery", "name": "Data Backups", "description": "Mechanisms exist to create recurring backups of data, software and system images.", "nist_800_53": "CP-9", "iso_27k": "8.13"},
    {"control_id": "CIS-1.1", "source": "CIS", "domain": "Inventory and Control of Enterprise Assets", "name": "Establish and Maintain Detailed Enterprise Asset Inventory", "description": "Establish and maintain an accurate, detailed and up-to-date inventory of all enterprise assets."},
    {"control_id": "CIS-4.1", "source": "CIS", "domain": "Secure Configuration of Enterprise Assets and Software", "name": "Establish and Maintain a Secure Configuration Process", "description": "Establish and maintain a secure configuration process for enterprise assets and software."},
]

FRAMEWORK = {
    "code": "SOC2-2017",
    "name": "SOC 2 Trust Services Criteria",
    "description": "AICPA Trust Services Criteria for security, availability, processing integrity, confidentiality and privacy.",
    "type": "compliance",
    "status": "active",
    "version": "2017",
    "publisher": "AICPA",
    "tags": ["soc2", "audit"],
    "industries": ["technology", "saas"],
}

FRAMEWORK_CONTROLS = [
    {"requirement_id": "CC6.1", "title": "Logical access security", "description": "Logical access security software, infrastructure and architectures are implemented.", "domain": "Access Control", "control_code": "IAC-01", "implementation_status": "implemented", "priority": "high"},
    {"requirement_id": "CC6.6", "title": "Boundary protection", "description": "Logical access security measures protect against threats from sources outside system boundaries.", "domain": "Access Control", "control_code": "IAC-06", "implementation_status": "partially_implemented", "priority": "critical"},
    {"requirement_id": "CC7.2", "title": "System monitoring", "description": "The entity monitors system components for anomalies indicative of malicious acts.", "domain": "Monitoring", "control_code": "MON-01", "implementation_status": "not_implemented", "priority": "high"},
    {"requirement_id": "A1.2", "title": "Backup and recovery", "description": "Environmental protections, software, data backup processes and recovery infrastructure are in place.", "domain": "Availability", "control_code": "BCD-11", "implementation_status": "implemented", "priority": "medium"},
]


async def seed():
    async with async_session() as s:
        created = 0
        for row in CONTROLS:
            existing = (await s.execute(
                select(Control).where(Control.control_id == row["control_id"])
            )).scalar_one_or_none()
            if existing:
                continue
            s.add(Control(**row))
            created += 1
        print(f"Controls: {created} created, {len(CONTROLS) - created} already present")

        fw = (await s.execute(
            select(Framework).where(Framework.code == FRAMEWORK["code"])
        )).scalar_one_or_none()
        if fw is None:
            fw = Framework(**{
                **FRAMEWORK,
                "type": FrameworkType(FRAMEWORK["type"]),
                "status": FrameworkStatus(FRAMEWORK["status"]),
            })
            s.add(fw)
            await s.flush()
            for fc in FRAMEWORK_CONTROLS:
                s.add(FrameworkControl(
                    framework_id=fw.id,
                    **{
                        **fc,
                        "implementation_status": ImplementationStatus(fc["implementation_status"]),
                        "priority": ControlPriority(fc["priority"]),
                    },
                ))
            await recalculate_progress(s, fw.id)
            print(f"Framework {fw.code}: created with {len(FRAMEWORK_CONTROLS)} controls, "
                  f"{fw.completion_percentage}% complete")
        else:
            print(f"Framework {fw.code}: already present")

        await s.commit()

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
