from __future__ import annotations

from django.test import SimpleTestCase, override_settings

from apps.pos.pagination import paginate


class PaginateTests(SimpleTestCase):
    def test_last_page_holds_the_remainder(self):
        page = paginate(list(range(1, 24)), page=3, page_size=10)
        self.assertEqual(page.items, (21, 22, 23))
        self.assertEqual(page.total_pages, 3)
        self.assertEqual(page.label, "Página 3 de 3")
        self.assertEqual(page.summary, "Mostrando 21 - 23 de 23 registro(s)")
        self.assertTrue(page.has_previous)
        self.assertFalse(page.has_next)

    def test_empty_list_is_a_single_empty_page(self):
        page = paginate([], page=1, page_size=10)
        self.assertEqual(page.items, ())
        self.assertEqual(page.label, "Página 1 de 1")
        self.assertEqual(page.summary, "Mostrando 0 - 0 de 0 registro(s)")

    def test_out_of_range_page_is_clamped(self):
        self.assertEqual(paginate(list(range(23)), page=9, page_size=10).page, 3)
        self.assertEqual(paginate(list(range(23)), page=0, page_size=10).page, 1)

    @override_settings(POS_DEFAULT_PAGE_SIZE=5, POS_MAX_PAGE_SIZE=50)
    def test_page_size_defaults_and_cap(self):
        self.assertEqual(paginate(list(range(23))).page_size, 5)
        self.assertEqual(paginate(list(range(23)), page_size=500).page_size, 50)

    def test_as_dict(self):
        data = paginate(list(range(23)), page=2, page_size=10).as_dict()
        self.assertEqual(data["page"], 2)
        self.assertEqual(data["total_items"], 23)
        self.assertEqual(data["label"], "Página 2 de 3")
