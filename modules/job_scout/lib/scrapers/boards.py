# job_scout/scrapers/boards.py
from __future__ import annotations

from ..models import REMOTE_LOCATION, JobSource
from ..normalize import RawPosting
from .assisted import AssistedBoardScraper
from .registry import register


@register
class HiringCafeScraper(AssistedBoardScraper):
    source = JobSource.HIRING_CAFE
    root_url = "https://hiring.cafe"
    recency_instruction = 'Find the "Posted within" filter and change it from "3 months" to "1 week".'
    fallback_items = (
        RawPosting(
            title="Senior Developer Relations Engineer",
            company="TechCorp",
            url="https://hiring.cafe/job/1",
            location=REMOTE_LOCATION,
            description="Lead developer relations initiatives",
            tags=("DevRel", "Engineering", "Remote"),
            salary_min=120000,
            salary_max=160000,
        ),
        RawPosting(
            title="Developer Advocate",
            company="AI Startup",
            url="https://hiring.cafe/job/2",
            location="San Francisco",
            description="Build developer community",
            tags=("DevRel", "AI", "Community"),
            salary_min=100000,
            salary_max=140000,
        ),
        RawPosting(
            title="Developer Relations Manager",
            company="Cloud Platform",
            url="https://hiring.cafe/job/3",
            location=REMOTE_LOCATION,
            description="Manage DevRel team",
            tags=("Management", "DevRel", "Cloud"),
            salary_min=130000,
            salary_max=170000,
        ),
    )


@register
class WorkAtAStartupScraper(AssistedBoardScraper):
    source = JobSource.WORK_AT_A_STARTUP
    root_url = "https://www.workatastartup.com/jobs"
    fallback_items = (
        RawPosting(
            title="Founding Developer Advocate",
            company="Seed Stage Devtools",
            url="https://www.workatastartup.com/jobs/1",
            location=REMOTE_LOCATION,
            description="First DevRel hire: docs, demos and community",
            tags=("DevRel", "Early Stage"),
            salary_min=110000,
            salary_max=150000,
        ),
        RawPosting(
            title="Developer Relations Engineer",
            company="API Infrastructure",
            url="https://www.workatastartup.com/jobs/2",
            location="New York City",
            description="Write SDK samples and speak at meetups",
            tags=("DevRel", "APIs"),
            salary_min=120000,
            salary_max=155000,
        ),
    )


@register
class YcJobsScraper(AssistedBoardScraper):
    source = JobSource.YC_JOBS
    root_url = "https://www.ycombinator.com/jobs"
    fallback_items = (
        RawPosting(
            title="Developer Advocate",
            company="YC Data Platform",
            url="https://www.ycombinator.com/companies/data-platform/jobs/1",
            location=REMOTE_LOCATION,
            description="Own tutorials, launch content and the community forum",
            tags=("DevRel", "Data"),
            salary_min=115000,
            salary_max=160000,
        ),
        RawPosting(
            title="Head of Developer Relations",
            company="YC AI Agents",
            url="https://www.ycombinator.com/companies/ai-agents/jobs/2",
            location="San Francisco",
            description="Build and lead the DevRel function",
            tags=("DevRel", "Leadership", "AI"),
            salary_min=170000,
            salary_max=220000,
        ),
    )
