#!/usr/bin/env python3
"""
Script to create the tables and counter procedures the StorySlides API writes to.

Tables owned by the wider platform (stories, chapters, profiles, likes,
comments, admins, moderation_logs, notifications) are expected to exist.
"""

import psycopg
from storyslides.core.config import settings

STATEMENTS = [
    ("slides table", """
        CREATE TABLE IF NOT EXISTS slides (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            chapter_id UUID REFERENCES chapters(id) ON DELETE CASCADE,
            order_number INTEGER NOT NULL,
            content TEXT NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            UNIQUE (chapter_id, order_number)
        );
    """),
    ("ads table", """
        CREATE TABLE IF NOT EXISTS ads (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            video_url TEXT NOT NULL,
            start_date DATE NOT NULL,
            end_date DATE NOT NULL,
            impressions INTEGER NOT NULL DEFAULT 0,
            clicks INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        );
    """),
    ("ad_logs table", """
        CREATE TABLE IF NOT EXISTS ad_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            reader_id UUID NOT NULL,
            ad_id UUID REFERENCES ads(id) ON DELETE SET NULL,
            slide_position INTEGER NOT NULL,
            watched BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        );
    """),
    ("reads table", """
        CREATE TABLE IF NOT EXISTS reads (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            reader_id UUID NOT NULL,
            novel_id UUID REFERENCES stories(id) ON DELETE CASCADE,
            chapter_id UUID REFERENCES chapters(id) ON DELETE CASCADE,
            slide_number INTEGER NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT FALSE,
            last_read_at TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            UNIQUE (reader_id, novel_id, chapter_id)
        );
    """),
    ("system_settings table", """
        CREATE TABLE IF NOT EXISTS system_settings (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            setting_key TEXT NOT NULL UNIQUE,
            value TEXT NOT NULL,
            description TEXT,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        );
    """),
    ("default ads_frequency", """
        INSERT INTO system_settings (setting_key, value, description)
        VALUES ('ads_frequency', '6', 'Slides between ad breaks; 0 disables ads')
        ON CONFLICT (setting_key) DO NOTHING;
    """),
    ("increment_ad_impressions", """
        CREATE OR REPLACE FUNCTION increment_ad_impressions(ad_id UUID) RETURNS VOID AS $$
            UPDATE ads SET impressions = impressions + 1 WHERE id = ad_id;
        $$ LANGUAGE sql;
    """),
    ("increment_ad_clicks", """
        CREATE OR REPLACE FUNCTION increment_ad_clicks(ad_id UUID) RETURNS VOID AS $$
            UPDATE ads SET clicks = clicks + 1 WHERE id = ad_id;
        $$ LANGUAGE sql;
    """),
    ("increment_chapter_views", """
        CREATE OR REPLACE FUNCTION increment_chapter_views(chapter_id UUID) RETURNS VOID AS $$
            UPDATE chapters SET view_count = COALESCE(view_count, 0) + 1 WHERE id = chapter_id;
        $$ LANGUAGE sql;
    """),
    ("increment_story_views", """
        CREATE OR REPLACE FUNCTION increment_story_views(story_id UUID) RETURNS VOID AS $$
            UPDATE stories SET view_count = COALESCE(view_count, 0) + 1 WHERE id = story_id;
        $$ LANGUAGE sql;
    """),
]


def create_tables():
    """Create the necessary database tables and procedures."""
    connection_string = settings.get_postgres_connection_string()

    try:
        print("Connecting to database...")
        with psycopg.connect(connection_string) as conn:
            with conn.cursor() as cur:
                for label, statement in STATEMENTS:
                    print(f"Creating {label}...")
                    cur.execute(statement)

                print("Creating indexes...")
                cur.execute("CREATE INDEX IF NOT EXISTS idx_slides_chapter_id ON slides(chapter_id);")
                cur.execute("CREATE INDEX IF NOT EXISTS idx_ads_window ON ads(start_date, end_date);")
                cur.execute("CREATE INDEX IF NOT EXISTS idx_ad_logs_reader_ad ON ad_logs(reader_id, ad_id);")
                cur.execute("CREATE INDEX IF NOT EXISTS idx_reads_reader_id ON reads(reader_id);")

                conn.commit()

        print("✅ Database tables created successfully!")
        return True

    except psycopg.Error as e:
        print(f"❌ Error creating tables: {e}")
        return False


if __name__ == "__main__":
    create_tables()
