"""seed data sources, site config and unit-cost catalog

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-01 00:10:00.000000

"""
from datetime import date
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

VERIFIED = date(2025, 10, 1)

data_sources = sa.table(
    "data_sources",
    sa.column("name", sa.String),
    sa.column("url", sa.Text),
    sa.column("description", sa.Text),
    sa.column("api_endpoint", sa.Text),
    sa.column("status", sa.String),
)

site_config = sa.table(
    "site_config",
    sa.column("key", sa.String),
    sa.column("value", sa.Text),
    sa.column("description", sa.Text),
)

unit_costs = sa.table(
    "unit_costs",
    sa.column("name", sa.String),
    sa.column("display_name", sa.String),
    sa.column("cost", sa.Numeric),
    sa.column("unit", sa.String),
    sa.column("description", sa.Text),
    sa.column("source", sa.String),
    sa.column("source_url", sa.Text),
    sa.column("region", sa.String),
    sa.column("category", sa.String),
    sa.column("active", sa.Boolean),
    sa.column("display_order", sa.Integer),
    sa.column("last_verified", sa.Date),
)

_DATA_SOURCES = [
    {
        "name": "Forbes Real-Time Billionaires",
        "url": "https://www.forbes.com/real-time-billionaires/",
        "description": "Forbes official real-time billionaire rankings",
        "api_endpoint": "https://www.forbes.com/forbesapi/person/rtb/0/position/true.json",
        "status": "active",
    },
    {
        "name": "komed3/rtb-api",
        "url": "https://github.com/komed3/rtb-api",
        "description": "Historical Forbes data archive (GitHub)",
        "api_endpoint": "https://raw.githubusercontent.com/komed3/rtb-api/main/data/rtb.json",
        "status": "active",
    },
    {
        "name": "Bloomberg Billionaires Index",
        "url": "https://www.bloomberg.com/billionaires/",
        "description": "Bloomberg daily billionaire rankings",
        "api_endpoint": None,
        "status": "deprecated",
    },
]

_SITE_CONFIG = [
    ("wealth_threshold", "10000000", "Living reserve in USD subtracted before comparisons ($10 million)"),
    ("top_entity_limit", "50", "Number of top-ranked entities ingested and aggregated"),
    ("chart_days_default", "30", "Default number of days in history views"),
    ("last_manual_update", "", "Timestamp of the last completed update run"),
]

# (name, display_name, cost, unit, region, category, display_order, source, source_url, description)
_UNIT_COSTS = [
    ("communityWaterWell", "Community Water Well", 15000, "well", "Sub-Saharan Africa", "water", 1,
     "charity: water (2025)", "https://www.charitywater.org/stories/micro-price-points",
     "Complete community water well serving 500-1000 people, including drilling, pump installation and maintenance training."),
    ("waterFilterSystem", "Household Water Filter System", 50, "filter", "Global", "water", 2,
     "Water.org (2025)", "https://water.org/solutions/",
     "Ceramic water filter providing clean drinking water for one household for 3-5 years."),
    ("primarySchool", "Primary School Building", 75000, "school", "Global", "education", 3,
     "buildOn (2025)", "https://www.buildon.org/what-we-do/schools/",
     "Three-classroom primary school building in a rural area, with desks and basic supplies for 150 students."),
    ("yearOfSchool", "Year of Primary Education", 120, "student-year", "Sub-Saharan Africa", "education", 4,
     "UNESCO (2024)", "https://www.unesco.org/en/education/financing",
     "One full year of primary education for one child, including tuition, books, uniform and supplies."),
    ("schoolMealsYear", "Year of School Meals", 180, "child-year", "Global", "food", 5,
     "World Food Programme (2025)", "https://www.wfp.org/publications/state-school-feeding-worldwide",
     "One year of daily school meals for one child in a low-income country."),
    ("foodPackageFamily", "Monthly Food Package", 75, "family-month", "Global", "food", 6,
     "World Food Programme / FAO (2024)", "https://www.fao.org/publications/sofi/2024/en",
     "One month of food for a family of 5: grains, proteins, oils and essential nutrients."),
    ("us-student-year", "Year of Public Education (US)", 15633, "student-year", "United States", "education", 7,
     "U.S. Census Bureau (2025)",
     "https://www.census.gov/newsroom/press-releases/2025/2023-annual-survey-of-school-system-finances.html",
     "One year of public K-12 education per student in the United States (FY 2023 national average)."),
    ("us-school-meals", "Year of School Meals (US)", 650, "child-year", "United States", "food", 8,
     "USDA / Feeding America (2024)", "https://www.feedingamerica.org/hunger-in-america/child-hunger-facts",
     "One year of school breakfast and lunch for one child in the United States."),
    ("us-family-food-month", "Monthly Food Package (US)", 1000, "family-month", "United States", "food", 9,
     "USDA Food Plans (2024)", "https://www.fns.usda.gov/research/cnpp/usda-food-plans",
     "One month of food for a family of 4 on the USDA moderate-cost food plan."),
    ("us-family-home", "Family Home (US)", 427000, "home", "United States", "housing", 10,
     "National Association of Realtors (2025)",
     "https://www.nar.realtor/research-and-statistics/housing-statistics",
     "Median price of an existing single-family home in the United States (Q3 2025)."),
    ("us-college-year", "Year of College (US)", 28000, "student-year", "United States", "education", 11,
     "College Board (2024)", "https://research.collegeboard.org/trends/college-pricing",
     "Average annual tuition, fees, room and board at a 4-year public university."),
    ("us-healthcare-year", "Year of Health Insurance (US)", 9325, "person-year", "United States", "healthcare", 12,
     "KFF (2025)", "https://www.kff.org/health-costs/2025-employer-health-benefits-survey/",
     "Average annual premium for employer-sponsored individual health coverage."),
    ("malariaNets", "Insecticide-Treated Bed Net", 5, "net", "Sub-Saharan Africa", "healthcare", 7,
     "Against Malaria Foundation (2025)", "https://www.againstmalaria.com/DollarsPerNet.aspx",
     "Long-lasting insecticide-treated net protecting 2 people from malaria for 3-5 years."),
    ("cataractSurgery", "Cataract Surgery", 50, "surgery", "South Asia", "healthcare", 8,
     "Seva Foundation (2025)", "https://www.thelifeyoucansave.org/best-charities/seva/",
     "Cataract surgery restoring sight for one person, including pre- and post-operative care."),
    ("vaccineChild", "Full Childhood Immunization", 30, "child", "Global", "healthcare", 9,
     "UNICEF (2025)", "https://www.unicef.org/supply/vaccines-pricing-data",
     "Complete set of routine childhood vaccines for one child."),
    ("basicHouse", "Basic Family Home", 5000, "home", "Southeast Asia", "housing", 10,
     "Habitat for Humanity (2025)", "https://www.habitat.org/our-work/home-construction",
     "Simple two-room family home with roof, walls, floor, door and windows in a rural area."),
    ("solarPanel", "Home Solar Panel System", 300, "system", "East Africa", "energy", 11,
     "SolarAid (2025)", "https://solar-aid.org/bright-solutions/our-programmes/",
     "Basic solar system powering lights, phone charging and small appliances for one household."),
    ("emergencyKit", "Emergency Relief Kit", 50, "kit", "Global", "emergency", 12,
     "Red Cross (2025)", "https://www.redcross.org/about-us/our-work/international-services.html",
     "Emergency supplies for one family after a disaster: water purification, blankets, cooking and hygiene items."),
]


def upgrade() -> None:
    op.bulk_insert(data_sources, _DATA_SOURCES)
    op.bulk_insert(
        site_config,
        [{"key": k, "value": v, "description": d} for k, v, d in _SITE_CONFIG],
    )
    op.bulk_insert(
        unit_costs,
        [
            {
                "name": name,
                "display_name": display_name,
                "cost": cost,
                "unit": unit,
                "region": region,
                "category": category,
                "display_order": order,
                "source": source,
                "source_url": source_url,
                "description": description,
                "active": True,
                "last_verified": VERIFIED,
            }
            for (name, display_name, cost, unit, region, category, order,
                 source, source_url, description) in _UNIT_COSTS
        ],
    )


def downgrade() -> None:
    op.execute("DELETE FROM unit_costs")
    op.execute("DELETE FROM site_config")
    op.execute("DELETE FROM data_sources")
