"""
Tests for course and content management.
"""


class TestCourses:
    """Tests for course CRUD and publishing."""

    async def test_create_course(self, client, admin_headers, admin):
        response = await client.post(
            "/api/courses",
            json={"name": "  SSC CGL  ", "description": "Tier 1", "price": 299},
            headers=admin_headers
        )
        assert response.status_code == 201
        course = response.json()["course"]
        assert course["course_id"].startswith("COURSE_")
        assert course["name"] == "SSC CGL"
        assert course["published"] is False
        assert course["created_by"] == admin["admin_id"]

    async def test_subadmin_can_manage_content(self, client, subadmin_headers):
        response = await client.post("/api/courses", json={"name": "Bank PO"}, headers=subadmin_headers)
        assert response.status_code == 201

    async def test_student_cannot_create_course(self, client, student_headers):
        response = await client.post("/api/courses", json={"name": "Hack"}, headers=student_headers)
        assert response.status_code == 403

    async def test_blank_name_rejected(self, client, admin_headers):
        response = await client.post("/api/courses", json={"name": "   "}, headers=admin_headers)
        assert response.status_code == 422

    async def test_negative_price_rejected(self, client, admin_headers):
        response = await client.post("/api/courses", json={"name": "X", "price": -1}, headers=admin_headers)
        assert response.status_code == 422

    async def test_update_and_publish(self, client, admin_headers, draft_course):
        course_id = draft_course["course_id"]

        response = await client.put(f"/api/courses/{course_id}", json={"price": 799}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["course"]["price"] == 799
        assert response.json()["course"]["name"] == "GATE Draft"

        response = await client.put(
            f"/api/courses/{course_id}/publish", json={"published": True}, headers=admin_headers
        )
        assert response.json()["course"]["published"] is True

    async def test_update_missing_course(self, client, admin_headers):
        response = await client.put("/api/courses/COURSE_NOPE", json={"price": 1}, headers=admin_headers)
        assert response.status_code == 404

    async def test_admin_list_includes_drafts(self, client, admin_headers, course_tree, draft_course):
        response = await client.get("/api/courses", headers=admin_headers)
        assert response.json()["count"] == 2

    async def test_published_catalog(self, client, course_tree, draft_course):
        response = await client.get("/api/courses/student/published-courses")
        assert response.status_code == 200
        ids = [c["course_id"] for c in response.json()["courses"]]
        assert ids == [course_tree["course"]["course_id"]]

        response = await client.get(f"/api/courses/student/published-courses/{draft_course['course_id']}")
        assert response.status_code == 404

    async def test_draft_visible_to_admin_only(self, client, admin_headers, student_headers, draft_course):
        url = f"/api/courses/{draft_course['course_id']}"
        assert (await client.get(url)).status_code == 404
        assert (await client.get(url, headers=student_headers)).status_code == 404
        assert (await client.get(url, headers={"Authorization": "Bearer junk"})).status_code == 404
        assert (await client.get(url, headers=admin_headers)).status_code == 200


class TestHierarchy:
    """Tests for subjects, chapters, topics, tests and questions."""

    async def test_order_defaults_to_next_sibling(self, client, admin_headers, course_tree):
        course_id = course_tree["course"]["course_id"]
        response = await client.post(
            "/api/subjects", json={"course_id": course_id, "name": "VARC"}, headers=admin_headers
        )
        assert response.status_code == 201
        assert response.json()["subject"]["order"] == 2

        response = await client.get(f"/api/subjects/{course_id}", headers=admin_headers)
        names = [s["name"] for s in response.json()["subjects"]]
        assert names == ["Quantitative Aptitude", "VARC"]

    async def test_explicit_order_kept(self, client, admin_headers, course_tree):
        response = await client.post(
            "/api/chapters",
            json={"subject_id": course_tree["subject"]["subject_id"], "name": "Algebra", "order": 7},
            headers=admin_headers
        )
        assert response.json()["chapter"]["order"] == 7

    async def test_children_carry_ancestor_ids(self, course_tree):
        course_id = course_tree["course"]["course_id"]
        topic = course_tree["topic"]
        assert topic["course_id"] == course_id
        assert topic["subject_id"] == course_tree["subject"]["subject_id"]
        assert topic["chapter_id"] == course_tree["chapter"]["chapter_id"]
        question = course_tree["question"]
        assert question["course_id"] == course_id
        assert question["test_id"] == course_tree["test"]["test_id"]

    async def test_client_cannot_forge_ancestor(self, client, admin_headers, course_tree):
        response = await client.post(
            "/api/topics",
            json={"chapter_id": course_tree["chapter"]["chapter_id"], "name": "Ratios", "course_id": "COURSE_X"},
            headers=admin_headers
        )
        assert response.json()["topic"]["course_id"] == course_tree["course"]["course_id"]

    async def test_missing_parent(self, client, admin_headers):
        response = await client.post(
            "/api/chapters", json={"subject_id": "SUB_MISSING", "name": "Orphan"}, headers=admin_headers
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Subject not found"

    async def test_update_topic(self, client, admin_headers, course_tree):
        topic_id = course_tree["topic"]["topic_id"]
        response = await client.put(
            f"/api/topics/{topic_id}", json={"name": "Percent Change"}, headers=admin_headers
        )
        assert response.json()["topic"]["name"] == "Percent Change"

    async def test_create_exam_test(self, client, admin_headers, course_tree):
        response = await client.post(
            "/api/tests",
            json={"topic_id": course_tree["topic"]["topic_id"], "title": "Drill 2"},
            headers=admin_headers
        )
        test = response.json()["test"]
        assert test["duration_minutes"] == 60
        assert test["order"] == 2
        assert test["is_active"] is True

    async def test_question_crud(self, client, admin_headers, course_tree):
        test_id = course_tree["test"]["test_id"]
        response = await client.post(
            "/api/questions",
            json={
                "test_id": test_id,
                "question_text": "15 is what percent of 60?",
                "options": {"A": "15%", "B": "20%", "C": "25%", "D": "30%"},
                "correct_option": "C",
            },
            headers=admin_headers
        )
        assert response.status_code == 201
        question = response.json()["question"]
        assert question["difficulty"] == "Medium"
        assert question["question_id"].startswith("Q_")

        response = await client.put(
            f"/api/questions/{question['question_id']}", json={"difficulty": "Hard"}, headers=admin_headers
        )
        assert response.json()["question"]["difficulty"] == "Hard"

        response = await client.get(f"/api/questions/{test_id}", headers=admin_headers)
        assert response.json()["count"] == 2

        response = await client.delete(f"/api/questions/{question['question_id']}", headers=admin_headers)
        assert response.status_code == 200

    async def test_invalid_correct_option(self, client, admin_headers, course_tree):
        response = await client.post(
            "/api/questions",
            json={
                "test_id": course_tree["test"]["test_id"],
                "question_text": "?",
                "options": {"A": "1", "B": "2", "C": "3", "D": "4"},
                "correct_option": "E",
            },
            headers=admin_headers
        )
        assert response.status_code == 422

    async def test_delete_cascades(self, client, db, admin_headers, course_tree):
        course_id = course_tree["course"]["course_id"]
        response = await client.delete(f"/api/courses/{course_id}", headers=admin_headers)
        assert response.status_code == 200

        for collection in ("courses", "subjects", "chapters", "topics", "tests", "questions"):
            assert await db[collection].count_documents({"course_id": course_id}) == 0

    async def test_delete_chapter_keeps_siblings(self, client, db, admin_headers, course_tree):
        subject_id = course_tree["subject"]["subject_id"]
        other = await client.post(
            "/api/chapters", json={"subject_id": subject_id, "name": "Geometry"}, headers=admin_headers
        )

        response = await client.delete(
            f"/api/chapters/{course_tree['chapter']['chapter_id']}", headers=admin_headers
        )
        assert response.status_code == 200
        assert await db.topics.count_documents({}) == 0
        assert await db.questions.count_documents({}) == 0
        assert await db.chapters.count_documents({"chapter_id": other.json()["chapter"]["chapter_id"]}) == 1
        assert await db.subjects.count_documents({"subject_id": subject_id}) == 1
