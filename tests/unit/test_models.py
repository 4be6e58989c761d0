"""
Unit tests for jobboard/models.py - parsing backend records.
"""

from jobboard.models import Application, Company, JobPage, JobPosting, Metrics

from factories import make_job


class TestJobPosting:

    def test_parses_backend_field_names(self):
        job = make_job("64f0c0ffee", salaryMin=60000, isVisible=False)

        assert job.id == "64f0c0ffee"
        assert job.salary_min == 60000
        assert job.is_visible is False

    def test_populated_company(self):
        job = make_job(company={"_id": "c1", "name": "Acme", "logoUrl": "https://x/logo.png"})

        assert isinstance(job.company, Company)
        assert job.company_id == "c1"
        assert job.company_name == "Acme"
        assert job.company.logo_url == "https://x/logo.png"

    def test_company_reference_by_id(self):
        job = make_job(company="c1")

        assert job.company_id == "c1"
        assert job.company_name == ""

    def test_applicant_list_is_counted(self):
        job = make_job(applicantCount=["a", "b", "c"])

        assert job.applicant_count == 3

    def test_unknown_fields_are_kept(self):
        job = make_job(benefits=["Remote"])

        assert job.model_extra["benefits"] == ["Remote"]

    def test_path_key_prefers_slug(self):
        assert make_job("j1", slug="python-dev").path_key == "python-dev"
        assert make_job("j1", slug=None).path_key == "j1"

    def test_salary_label(self):
        assert make_job(salaryMin=50000, salaryMax=80000).salary_label() == "$50,000 - $80,000"
        assert make_job(salaryMin=None, salaryMax=None).salary_label() == "Salary not specified"
        assert make_job(salaryMin=40000, salaryMax=None).salary_label() == "$40,000+"

    def test_level_label(self):
        assert make_job(level="mid").level_label == "Mid-Level"


class TestOtherRecords:

    def test_application_job_reference(self):
        populated = Application.model_validate({"_id": "a1", "job": {"_id": "j1", "title": "Dev"}})
        bare = Application.model_validate({"_id": "a2", "job": "j2"})

        assert populated.job_id == "j1"
        assert populated.job_record.title == "Dev"
        assert bare.job_id == "j2"
        assert bare.job_record is None

    def test_job_page(self):
        page = JobPage.model_validate({
            "jobs": [{"_id": "j1", "title": "Dev"}],
            "pagination": {"page": 2, "pages": 5, "total": 48},
        })

        assert page.jobs[0].title == "Dev"
        assert page.pagination.pages == 5

    def test_metrics_aliases(self):
        metrics = Metrics.model_validate({"totalUsers": 12, "usersByRole": {"admin": 1}})

        assert metrics.total_users == 12
        assert metrics.users_by_role == {"admin": 1}
        assert metrics.total_jobs == 0

    def test_dump_uses_backend_names(self):
        job = JobPosting.model_validate({"_id": "j1", "salaryMin": 10})

        dumped = job.dump()

        assert dumped["_id"] == "j1"
        assert dumped["salaryMin"] == 10
